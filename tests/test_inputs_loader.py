import pytest

from stig_inspector.config.defaults import DEFAULT_INPUTS_PATH
from stig_inspector.config.inputs_loader import load_inputs, parse_input_override


def test_defaults_without_file():
    inputs = load_inputs()
    assert inputs["maxclassrepeat"] == 4
    assert inputs["authoritative_timeservers"] == []
    assert inputs["authoritative_timeservers_exact"] is False


def test_bundled_inputs_file():
    inputs = load_inputs(DEFAULT_INPUTS_PATH)
    assert "0.us.pool.ntp.mil" in inputs["authoritative_timeservers"]


def test_overrides_win(tmp_path):
    path = tmp_path / "inputs.yaml"
    path.write_text("maxclassrepeat: 3\ncustom_threshold: 7\n", encoding="utf-8")

    inputs = load_inputs(path, overrides={"maxclassrepeat": 2})

    assert inputs["maxclassrepeat"] == 2
    assert inputs["custom_threshold"] == 7


@pytest.mark.parametrize("content", [
    "maxclassrepeat: four\n",
    "maxclassrepeat: true\n",
    "authoritative_timeservers: tick.usno.navy.mil\n",
    "- not a mapping\n",
])
def test_invalid_inputs_raise(tmp_path, content):
    path = tmp_path / "inputs.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_inputs(path)


def test_parse_input_override():
    assert parse_input_override("maxclassrepeat=3") == {"maxclassrepeat": 3}
    assert parse_input_override("authoritative_timeservers=[a, b]") == {"authoritative_timeservers": ["a", "b"]}
    with pytest.raises(ValueError):
        parse_input_override("maxclassrepeat")
