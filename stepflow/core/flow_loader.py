# stepflow/core/flow_loader.py
from __future__ import annotations

"""Flow schema and loader
-------------------------
Defines the pydantic models for steps/flows and loads flow definitions from
JSON or YAML, including env substitution and multi-doc YAML files.

Flow files use one optional key per action ({"click": "#submit"}); parsing
turns each raw step into exactly one typed step model. The first recognised
action key (in ACTION_PRIORITY order) decides the step type, so an object
carrying several action keys only ever runs one action. Objects that cannot
be turned into a valid step become StepMalformed and fail at execution time.
"""

import json
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


# ---------- Core enums ----------


class ActionName(str, Enum):
    navigate = "navigate"
    click = "click"
    type = "type"
    wait_for = "waitFor"
    screenshot = "screenshot"
    verify = "verify"
    wait = "wait"
    scroll = "scroll"
    hover = "hover"
    select = "select"
    press = "press"
    evaluate = "evaluate"
    malformed = "malformed"


# ---------- Step models (tagged union by 'action') ----------


class StepBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: ActionName
    timeout_ms: Optional[int] = Field(default=None, ge=0, description="Driver wait timeout override")
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, description="Source object")


class StepNavigate(StepBase):
    action: Literal[ActionName.navigate] = ActionName.navigate
    url: str = Field(..., description="Absolute URL or path relative to the base URL")


class StepClick(StepBase):
    action: Literal[ActionName.click] = ActionName.click
    selector: str


class StepType(StepBase):
    action: Literal[ActionName.type] = ActionName.type
    selector: str
    text: str = Field(..., description="Text to type")


class StepWaitFor(StepBase):
    action: Literal[ActionName.wait_for] = ActionName.wait_for
    selector: str


class StepScreenshot(StepBase):
    action: Literal[ActionName.screenshot] = ActionName.screenshot
    label: str = Field(..., description="Base filename (no extension)")


class StepVerify(StepBase):
    action: Literal[ActionName.verify] = ActionName.verify
    selector: str
    expected: str = Field(..., description="Case-insensitive substring of the element text")


class StepWait(StepBase):
    action: Literal[ActionName.wait] = ActionName.wait
    ms: float = Field(..., ge=0, allow_inf_nan=False, description="Milliseconds; fractions allowed")


class StepScroll(StepBase):
    action: Literal[ActionName.scroll] = ActionName.scroll
    selector: str


class StepHover(StepBase):
    action: Literal[ActionName.hover] = ActionName.hover
    selector: str


class StepSelect(StepBase):
    action: Literal[ActionName.select] = ActionName.select
    selector: str
    value: str = Field(..., description="Option value to select")


class StepPress(StepBase):
    action: Literal[ActionName.press] = ActionName.press
    key: str = Field(..., description="Key name, e.g. 'Enter'")


class StepEvaluate(StepBase):
    action: Literal[ActionName.evaluate] = ActionName.evaluate
    script: str


class StepMalformed(StepBase):
    action: Literal[ActionName.malformed] = ActionName.malformed
    reason: str


Step = Union[
    StepNavigate,
    StepClick,
    StepType,
    StepWaitFor,
    StepScreenshot,
    StepVerify,
    StepWait,
    StepScroll,
    StepHover,
    StepSelect,
    StepPress,
    StepEvaluate,
    StepMalformed,
]


# ---------- Raw object → typed step ----------

# (accepted keys, model, field for the tag value, (companion key, field) or None)
_STEP_TABLE: tuple[tuple[tuple[str, ...], type[StepBase], str, Optional[tuple[str, str]]], ...] = (
    (("goto", "navigate"), StepNavigate, "url", None),
    (("click",), StepClick, "selector", None),
    (("type",), StepType, "selector", ("text", "text")),
    (("waitFor",), StepWaitFor, "selector", None),
    (("screenshot",), StepScreenshot, "label", None),
    (("verify",), StepVerify, "selector", ("contains", "expected")),
    (("wait",), StepWait, "ms", None),
    (("scroll",), StepScroll, "selector", None),
    (("hover",), StepHover, "selector", None),
    (("select",), StepSelect, "selector", ("value", "value")),
    (("press", "pressKey"), StepPress, "key", None),
    (("evaluate",), StepEvaluate, "script", None),
)

ACTION_PRIORITY: tuple[str, ...] = tuple(keys[0] for keys, *_ in _STEP_TABLE)

_TIMEOUT_KEYS = ("timeout", "timeoutMs")


def _raw_json(raw: Any) -> str:
    return json.dumps(raw, ensure_ascii=False, default=str)


def _format_errors(ve: ValidationError) -> str:
    parts = []
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        parts.append(f"{loc}: {e.get('msg', 'invalid value')}" if loc else e.get("msg", "invalid value"))
    return "; ".join(parts)


def parse_step(raw: Any) -> Step:
    """Turn one raw flow step into a typed step. Never raises."""
    if not isinstance(raw, dict):
        return StepMalformed(reason=f"Unknown step type: {_raw_json(raw)}", raw={"value": raw})

    timeout = next((raw[k] for k in _TIMEOUT_KEYS if k in raw), None)

    for keys, model, field, companion in _STEP_TABLE:
        tag = next((k for k in keys if k in raw), None)
        if tag is None:
            continue

        data: dict[str, Any] = {field: raw[tag], "timeout_ms": timeout, "raw": raw}
        if companion:
            c_key, c_field = companion
            if c_key not in raw:
                return StepMalformed(
                    reason=f"'{tag}' step requires '{c_key}': {_raw_json(raw)}",
                    timeout_ms=None,
                    raw=raw,
                )
            data[c_field] = raw[c_key]

        try:
            return model.model_validate(data)
        except ValidationError as ve:
            return StepMalformed(reason=f"Invalid '{tag}' step ({_format_errors(ve)}): {_raw_json(raw)}", raw=raw)

    return StepMalformed(reason=f"Unknown step type: {_raw_json(raw)}", raw=raw)


# ---------- Flow model ----------


class Flow(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(..., description="Flow name shown in reports")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    description: Optional[str] = None
    steps: tuple[Step, ...]

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("steps", mode="before")
    @classmethod
    def _parse_steps(cls, v: Any):
        if not isinstance(v, (list, tuple)):
            raise ValueError("steps must be a list")
        return tuple(s if isinstance(s, StepBase) else parse_step(s) for s in v)

    @property
    def malformed_steps(self) -> list[tuple[int, StepMalformed]]:
        return [(i, s) for i, s in enumerate(self.steps, start=1) if isinstance(s, StepMalformed)]


# ---------- Loading ----------

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _subst_env(obj: Any) -> Any:
    """Replace ${VAR} in every string value; unknown variables are left untouched."""
    if isinstance(obj, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def flow_from_dict(data: Any, source: str = "<inline>") -> Flow:
    if not isinstance(data, dict):
        raise ValueError(f"Flow '{source}' must define a mapping/object at the top level.")
    try:
        return Flow.model_validate(_subst_env(data))
    except ValidationError as ve:
        lines = [f"Invalid flow '{source}':"]
        for e in ve.errors():
            loc = ".".join(str(p) for p in e.get("loc", []))
            lines.append(f"  - {loc}: {e.get('msg', 'invalid value')}")
        raise ValueError("\n".join(lines)) from ve


def _read_documents(path: Path) -> list[Any]:
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return [json.loads(raw)]
        except json.JSONDecodeError as je:
            raise ValueError(f"JSON parse error in {path}: {je}") from je
    try:
        return [d for d in yaml.safe_load_all(raw) if d is not None]
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {path}: {ye}") from ye


def load_flow(path: Path | str) -> Flow:
    """Load a single flow from a .json/.yaml/.yml file."""
    flow_path = Path(path)
    if not flow_path.exists():
        raise FileNotFoundError(f"Test flow file not found: {flow_path}")
    docs = _read_documents(flow_path)
    if not docs:
        raise ValueError(f"No flow found in {flow_path}")
    return flow_from_dict(docs[0], source=str(flow_path))


def load_flows_file(path: Path | str) -> list[Flow]:
    """Load one or more flows from a file (YAML files may hold several documents)."""
    flow_path = Path(path)
    if not flow_path.exists():
        raise FileNotFoundError(f"Test flow file not found: {flow_path}")
    out: list[Flow] = []
    for idx, data in enumerate(_read_documents(flow_path), start=1):
        source = str(flow_path) if idx == 1 else f"{flow_path} (document {idx})"
        out.append(flow_from_dict(data, source=source))
    if not out:
        raise ValueError(f"No flow found in {flow_path}")
    return out


FLOW_SUFFIXES = (".json", ".yaml", ".yml")


def find_flow_files(root: Path, recursive: bool = True) -> list[Path]:
    pattern = "**/*" if recursive else "*"
    return sorted(p for p in root.glob(pattern) if p.is_file() and p.suffix.lower() in FLOW_SUFFIXES)


__all__ = [
    "ActionName",
    "ACTION_PRIORITY",
    "Step",
    "StepBase",
    "StepNavigate",
    "StepClick",
    "StepType",
    "StepWaitFor",
    "StepScreenshot",
    "StepVerify",
    "StepWait",
    "StepScroll",
    "StepHover",
    "StepSelect",
    "StepPress",
    "StepEvaluate",
    "StepMalformed",
    "Flow",
    "parse_step",
    "flow_from_dict",
    "load_flow",
    "load_flows_file",
    "find_flow_files",
    "FLOW_SUFFIXES",
]
