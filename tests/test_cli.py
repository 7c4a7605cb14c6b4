from pathlib import Path

import pytest

from tilecutter import cli
from tilecutter.dmi import load_dmi
from tilecutter.icon import Icon, NamedIcon
from tilecutter.log_utils import PROJECT_TOPICS, parse_topics

SLICE = "mode: BitmaskSlice\n"


def test_single_file_written_next_to_input(tmp_path, write_pair, make_sheet, capsys):
    config = write_pair("wall", SLICE, make_sheet(4))
    assert cli.main([str(config)]) == 0

    icon = load_dmi(tmp_path / "wall.dmi")
    assert icon.state_names() == [str(i) for i in range(16)]
    assert "Found 1 files!" in capsys.readouterr().out


def test_file_prefix(tmp_path, write_pair, make_sheet):
    config = write_pair("wall", "file_prefix: GEN-\n" + SLICE, make_sheet(4))
    assert cli.main([str(config)]) == 0
    assert (tmp_path / "GEN-wall.dmi").is_file()


def test_missing_image_is_reported(tmp_path, write_pair, capsys):
    config = write_pair("wall", SLICE, None)
    assert cli.main([str(config)]) == 1
    err = capsys.readouterr().err
    assert "Input not found: wall.png" in err
    assert f"Searched in `{tmp_path}`" in err
    assert "hint:" in err


def test_failures_do_not_stop_other_files(tmp_path, write_pair, make_sheet, capsys):
    write_pair("good", SLICE, make_sheet(4))
    write_pair("bad", "mode: Nonsense\n", make_sheet(4))
    assert cli.main([str(tmp_path)]) == 1
    assert (tmp_path / "good.dmi").is_file()
    assert not (tmp_path / "bad.dmi").exists()
    captured = capsys.readouterr()
    assert "Unknown mode 'Nonsense'" in captured.err
    assert "Processed 1/2 files" in captured.out


def test_output_mirrors_input_tree(tmp_path, write_pair, make_sheet):
    write_pair("glass", SLICE, make_sheet(4), subdir="in/windows")
    out = tmp_path / "out"
    assert cli.main([str(tmp_path / "in"), "-o", str(out)]) == 0
    assert (out / "windows" / "glass.dmi").is_file()


def test_flatten(tmp_path, write_pair, make_sheet):
    write_pair("glass", SLICE, make_sheet(4), subdir="in/windows")
    out = tmp_path / "out"
    assert cli.main([str(tmp_path / "in"), "-o", str(out), "--flatten"]) == 0
    assert (out / "glass.dmi").is_file()


def test_glob_input(tmp_path, write_pair, make_sheet):
    write_pair("a", SLICE, make_sheet(4))
    write_pair("b", SLICE, make_sheet(4))
    assert cli.main([str(tmp_path / "*.yaml")]) == 0
    assert (tmp_path / "a.dmi").is_file()
    assert (tmp_path / "b.dmi").is_file()


def test_templates_are_resolved_and_skipped(tmp_path, write_pair, make_sheet):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "walls.yml").write_text("mode: !BitmaskSlice\n  output_name: wall\n")
    write_pair("glass", "template: walls\nmode: !BitmaskSlice {}\n", make_sheet(4))

    assert cli.main([str(tmp_path), "-t", str(templates)]) == 0
    icon = load_dmi(tmp_path / "glass.dmi")
    assert icon.state_names()[0] == "wall-0"
    assert not (templates / "walls.dmi").exists()


def test_missing_template_dir_only_matters_when_used(tmp_path, write_pair, make_sheet, capsys):
    write_pair("plain", SLICE, make_sheet(4))
    write_pair("templated", "template: walls\n" + SLICE, make_sheet(4))
    assert cli.main([str(tmp_path), "-t", str(tmp_path / "nowhere")]) == 1
    assert (tmp_path / "plain.dmi").is_file()
    assert "Failed to find template folder" in capsys.readouterr().err


def test_debug_outputs(tmp_path, write_pair, make_sheet):
    config = write_pair("wall", SLICE, make_sheet(4))
    assert cli.main([str(config), "-d"]) == 0
    debug_dir = tmp_path / "wall-DEBUGOUT"
    assert (debug_dir / "wall-PREVIEW.png").is_file()
    assert (debug_dir / "wall-ASSEMBLED-CORNERS.png").is_file()
    assert (debug_dir / "CORNERS" / "wall-CORNER-Concave-SouthWest.png").is_file()
    assert (tmp_path / "wall.dmi").is_file()


def test_no_configs_found(tmp_path, capsys):
    assert cli.main([str(tmp_path)]) == 1
    assert "no .yaml/.yml configs" in capsys.readouterr().err


def test_missing_input(tmp_path):
    assert cli.main([str(tmp_path / "nope.yaml")]) == 1


def test_parallel_jobs_use_a_pool(tmp_path, write_pair, make_sheet, mocker):
    write_pair("a", SLICE, make_sheet(4))
    write_pair("b", SLICE, make_sheet(4))
    pool_cls = mocker.patch("tilecutter.cli.multiprocessing.Pool")
    pool = pool_cls.return_value.__enter__.return_value
    pool.imap_unordered.side_effect = map

    assert cli.main([str(tmp_path), "-j", "4"]) == 0
    pool_cls.assert_called_once_with(processes=2)
    assert (tmp_path / "a.dmi").is_file()


def test_unexpected_write_error_is_collected(tmp_path, write_pair, make_sheet, mocker):
    config = write_pair("wall", SLICE, make_sheet(4))
    mocker.patch("tilecutter.cli.save_dmi", side_effect=PermissionError("read-only"))
    assert cli.main([str(config)]) == 1


@pytest.mark.parametrize(
    "named, prefix, expected",
    [
        (NamedIcon(Icon(1, 1)), "", "sub/wall.dmi"),
        (NamedIcon(Icon(1, 1), name_hint="alt"), "GEN-", "sub/GEN-wall-alt.dmi"),
        (NamedIcon(Icon(1, 1), path_hint="DEBUGOUT"), "GEN-", "sub/wall-DEBUGOUT/GEN-wall.dmi"),
    ],
)
def test_output_path(named, prefix, expected):
    job = cli.Job(
        config_path=Path("root/sub/wall.yaml"),
        root=Path("root"),
        output=Path("out"),
        flatten=False,
        templates=Path("templates"),
        debug=False,
    )
    assert cli.output_path(job, named, prefix) == Path("out") / expected


def test_debug_topic_prefixes():
    assert parse_topics("sl, conf") == {"slice", "config"}
    assert parse_topics("all") == PROJECT_TOPICS
    assert parse_topics("nothing") == set()
    assert parse_topics("win, dir, rest") == {"windows", "dirvis", "restore"}


def test_null_block_does_not_stop_the_run(tmp_path, write_pair, make_sheet):
    write_pair("good", SLICE, make_sheet(4))
    write_pair("empty_prefabs", SLICE + "prefabs:\n", make_sheet(4))
    write_pair("bad", SLICE + "cut_pos: {x: ~, y: 8}\n", make_sheet(4))
    assert cli.main([str(tmp_path)]) == 1
    assert (tmp_path / "good.dmi").is_file()
    assert (tmp_path / "empty_prefabs.dmi").is_file()
    assert not (tmp_path / "bad.dmi").exists()


def test_unexpected_exception_is_collected(tmp_path, write_pair, make_sheet, mocker, capsys):
    write_pair("good", SLICE, make_sheet(4))
    write_pair("bad", SLICE, make_sheet(4))
    real_load = cli.load_config

    def load(path, resolver):
        if path.stem == "bad":
            raise KeyError("boom")
        return real_load(path, resolver)

    mocker.patch("tilecutter.cli.load_config", side_effect=load)
    assert cli.main([str(tmp_path)]) == 1
    assert (tmp_path / "good.dmi").is_file()
    assert "unexpected KeyError" in capsys.readouterr().err


def test_reconstruct_from_dmi(tmp_path, write_pair, make_sheet):
    config = write_pair("glass", "mode: BitmaskSlice\noutput_name: glass\n", make_sheet(4))
    assert cli.main([str(config)]) == 0
    (tmp_path / "glass.yaml").write_text(
        "mode: !BitmaskSliceReconstruct\n  extract: ['0', '15', '12', '3']\n"
    )

    assert cli.main([str(tmp_path / "glass.yaml")]) == 0
    sheet = tmp_path / "glass-precut.png"
    assert sheet.is_file()
    assert "output_name: glass" in (tmp_path / "glass-precut.yaml").read_text()

    # the rebuilt pair cuts back into the same states
    assert cli.main([str(tmp_path / "glass-precut.yaml")]) == 0
    icon = load_dmi(tmp_path / "glass-precut.dmi")
    assert icon.state_names()[:2] == ["glass-0", "glass-1"]
