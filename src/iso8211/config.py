from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


@dataclass
class DecoderConfig:
    strict: bool = False  # non-digit leader/directory numbers raise instead of reading as 0
    encoding: str = "latin-1"
    max_records: int | None = None

    def __post_init__(self) -> None:
        # fail at load time rather than on the first text subfield
        codecs.lookup(self.encoding)

    @staticmethod
    def from_mapping(payload: dict[str, Any]) -> DecoderConfig:
        max_records = payload.get("max_records")
        try:
            return DecoderConfig(
                strict=bool(payload.get("strict", False)),
                encoding=str(payload.get("encoding", "latin-1")),
                max_records=int(max_records) if max_records is not None else None,
            )
        except LookupError as exc:
            raise ValueError(f"Unknown text encoding: {payload.get('encoding')!r}") from exc


def load_config(path: Path) -> DecoderConfig:
    if path.suffix.lower() in {".yml", ".yaml"}:
        payload = yaml.safe_load(path.read_text())
    else:
        payload = json.loads(path.read_text())
    return DecoderConfig.from_mapping(payload or {})
