import logging

import pytest
import yaml
from PIL import Image

from tilecutter.blocks import Dimensions
from tilecutter.config import load_config
from tilecutter.errors import ConfigError, DmiError
from tilecutter.icon import Icon, IconState, OutputText
from tilecutter.operations.bitmask_reconstruct import (
    BitmaskSliceReconstruct,
    split_state_name,
)
from tilecutter.operations.bitmask_slice import BitmaskSlice

RED, GREEN, BLUE, GREY = (255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255), (9, 9, 9, 255)


def state(name, *colors, delay=None):
    images = [Image.new("RGBA", (8, 8), color) for color in colors]
    return IconState(name, frames=len(images), images=images, delay=delay)


def icon(*states):
    return Icon(width=8, height=8, states=list(states))


def run(op, dmi):
    sheet, config = [named.image for named in op.do_operation(dmi)]
    return sheet, yaml.safe_load(config.text)


def test_split_state_name():
    assert split_state_name("glass-12") == ("glass", "12")
    assert split_state_name("reinf-glass-0") == ("reinf-glass", "0")
    assert split_state_name("12") == (None, "12")


def test_columns_follow_extract_order():
    dmi = icon(state("w-0", RED), state("w-1", GREEN), state("w-2", BLUE))
    sheet, config = run(BitmaskSliceReconstruct(extract=["2", "0"]), dmi)
    assert sheet.size == (16, 8)
    assert sheet.getpixel((0, 0)) == BLUE
    assert sheet.getpixel((8, 0)) == RED
    assert config["output_name"] == "w"
    assert config["icon_size"] == {"x": 8, "y": 8}
    assert config["cut_pos"] == {"x": 4, "y": 4}
    assert "prefabs" not in config


def test_bespoke_states_become_prefabs():
    dmi = icon(state("w-0", RED), state("w-1", GREEN), state("w-broken", GREY))
    op = BitmaskSliceReconstruct(extract=["0", "1"], bespoke={"broken": 255})
    sheet, config = run(op, dmi)
    assert sheet.getpixel((16, 0)) == GREY
    assert config["prefabs"] == {255: 2}


def test_frames_become_rows_and_delays_carry_over():
    dmi = icon(
        state("w-0", RED, GREEN, delay=[1.0, 2.0]),
        state("w-1", BLUE, GREY, delay=[1.0, 2.0]),
    )
    sheet, config = run(BitmaskSliceReconstruct(extract=["0", "1"]), dmi)
    assert sheet.size == (16, 16)
    assert sheet.getpixel((0, 8)) == GREEN
    assert sheet.getpixel((8, 8)) == GREY
    assert config["animation"] == {"delays": [1.0, 2.0]}


def test_set_overrides_generated_fields():
    dmi = icon(state("w-0", RED))
    op = BitmaskSliceReconstruct(
        extract=["0"], overrides={"produce_dirs": True, "cut_pos": {"x": 2, "y": 2}}
    )
    _, config = run(op, dmi)
    assert config["produce_dirs"] is True
    assert config["cut_pos"] == {"x": 2, "y": 2}


def test_generated_config_loads_as_a_slice():
    dmi = icon(state("w-0", RED), state("w-1", GREEN), state("w-full", GREY))
    op = BitmaskSliceReconstruct(extract=["0", "1"], bespoke={"full": 15})
    outputs = op.do_operation(dmi)
    assert [named.name_hint for named in outputs] == ["precut", "precut"]
    assert isinstance(outputs[1].image, OutputText)

    config = load_config(outputs[1].image.text)
    assert isinstance(config.operation, BitmaskSlice)
    assert config.operation.icon_size == Dimensions(8, 8)
    assert config.operation.prefabs == {15: 2}


def test_inconsistent_prefixes():
    dmi = icon(state("w-0", RED), state("v-1", GREEN))
    with pytest.raises(DmiError, match="inconsistent prefixes"):
        BitmaskSliceReconstruct(extract=["0"]).do_operation(dmi)


def test_unaccounted_states_would_be_lost():
    dmi = icon(state("w-0", RED), state("w-damaged", GREEN))
    with pytest.raises(DmiError, match="damaged"):
        BitmaskSliceReconstruct(extract=["0"]).do_operation(dmi)


def test_missing_extract_state():
    with pytest.raises(DmiError, match="7"):
        BitmaskSliceReconstruct(extract=["0", "7"]).do_operation(icon(state("w-0", RED)))


def test_mismatched_delays():
    dmi = icon(
        state("w-0", RED, GREEN, delay=[1.0, 1.0]),
        state("w-1", BLUE, GREY, delay=[2.0, 1.0]),
    )
    with pytest.raises(DmiError, match="delays"):
        BitmaskSliceReconstruct(extract=["0", "1"]).do_operation(dmi)


def test_missing_bespoke_state_is_skipped(caplog):
    op = BitmaskSliceReconstruct(extract=["0"], bespoke={"broken": 255})
    with caplog.at_level(logging.WARNING, logger="tilecutter.restore"):
        _, config = run(op, icon(state("w-0", RED)))
    assert "prefabs" not in config
    assert "broken" in caplog.text


def test_png_input_is_rejected():
    with pytest.raises(DmiError):
        BitmaskSliceReconstruct(extract=["0"]).do_operation(Image.new("RGBA", (8, 8)))


def test_from_block():
    op = BitmaskSliceReconstruct.from_block(
        {"extract": [0, "15"], "bespoke": {"broken": 255}, "set": {"produce_dirs": True}}
    )
    assert op.extract == ["0", "15"]
    assert op.bespoke == {"broken": 255}
    assert op.overrides == {"produce_dirs": True}


@pytest.mark.parametrize(
    "block",
    [
        {},
        {"extract": []},
        {"extract": ["0"], "bespoke": {"broken": 300}},
        {"extract": ["0"], "set": ["produce_dirs"]},
    ],
)
def test_from_block_rejects(block):
    with pytest.raises(ConfigError):
        BitmaskSliceReconstruct.from_block(block)


def test_duplicate_names_rejected():
    with pytest.raises(ConfigError):
        BitmaskSliceReconstruct(extract=["0"], bespoke={"0": 255}).verify_config()
