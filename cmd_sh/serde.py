import enum
import json
from typing import Any

import yaml


class Fmt(enum.Enum):
    yaml = "yaml"
    json = "json"


def to_fmt(text: str) -> Fmt:
    if text == "json":
        return Fmt.json
    return Fmt.yaml


def parse(text: str, fmt: Fmt) -> Any:
    if not text:
        return None
    if fmt == Fmt.json:
        return json.loads(text)
    return yaml.safe_load(text)


def stringify(data: Any, fmt: Fmt) -> str:
    if data is None or data == "":
        return ""
    if fmt == Fmt.json:
        output = json.dumps(data, indent=2)
    else:
        output = yaml.safe_dump(
            data, sort_keys=False, default_flow_style=False, allow_unicode=True
        )
    return output.rstrip()
