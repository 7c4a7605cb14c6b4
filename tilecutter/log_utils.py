import logging

# Logging topics, each a child of the "tilecutter" logger.
PROJECT_TOPICS = {"cli", "config", "slice", "dirvis", "windows", "restore", "icon", "dmi"}


class RichLogFormatter(logging.Formatter):
    """Aligned console output, optionally coloured by level."""

    def __init__(self, use_color=False):
        super().__init__()
        if use_color:
            self.COLORS = {
                logging.DEBUG: "\033[38;5;252m",  # Light Grey
                logging.INFO: "\033[38;5;111m",  # Pastel Blue
                logging.WARNING: "\033[38;5;229m",  # Pale Yellow
                logging.ERROR: "\033[38;5;210m",  # Soft Red
                logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
            }
            self.BOLD = "\033[1m"
            self.RESET = "\033[0m"
        else:
            self.COLORS = {}
            self.BOLD = ""
            self.RESET = ""

    def format(self, record):
        color = self.COLORS.get(record.levelno, "")
        level_name = record.levelname[:5]
        topic = record.name.split(".")[-1][:6]
        prefix = f"{color}{level_name:<5}{self.RESET}:{self.BOLD}{topic:<6}{self.RESET}: "
        s = super().format(record)
        return "\n".join(f"{prefix}{line}" for line in s.split("\n"))


def parse_topics(debug_topics):
    """Expand a comma separated topic list; prefixes and "all" are accepted."""
    user_topics = [t.strip() for t in debug_topics.split(",") if t.strip()]
    if "all" in user_topics:
        return set(PROJECT_TOPICS)
    return {full for u in user_topics for full in PROJECT_TOPICS if full.startswith(u)}


def setup_logging(level, color_logs=False, debug_topics=None, log_file=None):
    """Configures the "tilecutter" logger tree for the CLI."""
    root_logger = logging.getLogger("tilecutter")
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(RichLogFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w")
            file_handler.setFormatter(RichLogFormatter(use_color=False))
            root_logger.addHandler(file_handler)
            logging.getLogger("tilecutter.cli").info("Logging to file: %s", log_file)
        except OSError as e:
            root_logger.error("Could not open log file %s: %s", log_file, e)

    for topic in PROJECT_TOPICS:
        logging.getLogger(f"tilecutter.{topic}").setLevel(logging.NOTSET)
    if debug_topics:
        for topic in parse_topics(debug_topics):
            logging.getLogger(f"tilecutter.{topic}").setLevel(logging.DEBUG)
