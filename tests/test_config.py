from pathlib import Path

import pytest

from iso8211.config import DecoderConfig, load_config


def test_defaults_are_lenient_latin1():
    cfg = DecoderConfig()
    assert cfg.strict is False
    assert cfg.encoding == "latin-1"
    assert cfg.max_records is None


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "decoder.yaml"
    path.write_text("strict: true\nencoding: utf-8\nmax_records: 5\n")
    cfg = load_config(path)
    assert cfg == DecoderConfig(strict=True, encoding="utf-8", max_records=5)


def test_load_json_config_ignores_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "decoder.json"
    path.write_text('{"strict": false, "comment": "chart cells"}')
    assert load_config(path) == DecoderConfig()


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_config(path) == DecoderConfig()


def test_unknown_encoding_is_rejected():
    with pytest.raises(ValueError):
        DecoderConfig.from_mapping({"encoding": "not-a-codec"})
