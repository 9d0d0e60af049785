"""Action records and the JSON files they are loaded from and saved to.

Two file formats are accepted:

- recordings: an ordered array of action objects, each with a ``type`` tag and
  either ``buttonText`` or ``id``;
- card rules: an object mapping a card's event id to
  ``{action, outfit?, branch, exitButtonText?, description}``.

Anything else raises ``ConfigInvalid`` before a run can start.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from src.app.browser_automation.config import PageSelectors
from src.app.browser_automation.descriptors import (
    ByContainerAndLabel,
    BySelectorFallback,
    ByStableId,
    TargetDescriptor,
)

from .errors import ConfigInvalid

logger = logging.getLogger(__name__)

BRANCH_ID_ATTRIBUTE = "data-branch-id"


@dataclass(frozen=True)
class ActionRecord:
    """One replayable step: a target plus optional auxiliary instructions."""
    target: TargetDescriptor
    outfit: Optional[str] = None            # switch outfit after clicking
    exit_button_text: Optional[str] = None  # then click this exit control
    equip: Optional[str] = None             # fast-equip for this challenge before clicking
    delay_ms: Optional[int] = None          # overrides the transition delay
    description: Optional[str] = None
    debug_html: Optional[str] = None

    @property
    def label(self) -> str:
        return self.description or self.target.button_text or getattr(self.target, "identifier", "")


@dataclass(frozen=True)
class CardRule:
    action: str                             # "play" | "discard"
    description: str = ""
    branch: Optional[TargetDescriptor] = None
    outfit: Optional[str] = None
    exit_button_text: Optional[str] = None


@dataclass(frozen=True)
class BranchTarget:
    title: str
    priority: int = 0


# ------------------------------ Descriptors ------------------------------ #

def parse_descriptor(data: Dict[str, Any], selectors: PageSelectors = PageSelectors()) -> TargetDescriptor:
    """Build a descriptor from its JSON form; raises ConfigInvalid on unknown or incomplete tags."""
    if not isinstance(data, dict):
        raise ConfigInvalid(f"Descriptor must be an object, got {type(data).__name__}")
    kind = data.get("type")
    text = str(data.get("buttonText") or "")
    try:
        if kind == "titled_block_button":
            return ByContainerAndLabel(button_text=text, title_hint=_required(data, "titleHint"))
        if kind == "storylet_exit_button":
            return ByContainerAndLabel(button_text=_required(data, "buttonText"), container=selectors.exit_options)
        if kind == "container_button":
            return ByContainerAndLabel(
                button_text=_required(data, "buttonText"),
                container=_required(data, "container"),
                title_hint=data.get("titleHint") or None,
            )
        if kind == "branch_button":
            return ByStableId(identifier=_required(data, "branchId"), button_text=text, attribute=BRANCH_ID_ATTRIBUTE)
        if kind == "id_button":
            return ByStableId(identifier=_required(data, "id"), button_text=text)
        if kind == "attribute_button":
            return ByStableId(identifier=_required(data, "id"), button_text=text, attribute=_required(data, "attribute"))
        if kind == "selector_button":
            return BySelectorFallback(selector=_required(data, "selector"), button_text=text)
    except ValueError as e:
        raise ConfigInvalid(str(e)) from e
    raise ConfigInvalid(f"Unknown descriptor type: {kind!r}")


def descriptor_to_dict(descriptor: TargetDescriptor, selectors: PageSelectors = PageSelectors()) -> Dict[str, Any]:
    if isinstance(descriptor, ByContainerAndLabel):
        if descriptor.container is None:
            return {"type": "titled_block_button", "titleHint": descriptor.title_hint, "buttonText": descriptor.button_text}
        if descriptor.container == selectors.exit_options and not descriptor.title_hint:
            return {"type": "storylet_exit_button", "buttonText": descriptor.button_text}
        out = {"type": "container_button", "container": descriptor.container, "buttonText": descriptor.button_text}
        if descriptor.title_hint:
            out["titleHint"] = descriptor.title_hint
        return out
    if isinstance(descriptor, ByStableId):
        if descriptor.attribute == BRANCH_ID_ATTRIBUTE:
            return {"type": "branch_button", "branchId": descriptor.identifier, "buttonText": descriptor.button_text}
        if descriptor.attribute == "id":
            return {"type": "id_button", "id": descriptor.identifier, "buttonText": descriptor.button_text}
        return {"type": "attribute_button", "attribute": descriptor.attribute,
                "id": descriptor.identifier, "buttonText": descriptor.button_text}
    if isinstance(descriptor, BySelectorFallback):
        return {"type": "selector_button", "selector": descriptor.selector, "buttonText": descriptor.button_text}
    raise TypeError(f"Unknown target descriptor: {descriptor!r}")


def _required(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or str(value) == "":
        raise ConfigInvalid(f"'{data.get('type')}' descriptor is missing '{key}'")
    return str(value)


# ------------------------------ Recordings ------------------------------- #

def record_from_dict(data: Dict[str, Any], selectors: PageSelectors = PageSelectors()) -> ActionRecord:
    delay = data.get("delayMs")
    try:
        delay_ms = int(delay) if delay is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigInvalid(f"delayMs must be a number, got {delay!r}") from e
    return ActionRecord(
        target=parse_descriptor(data, selectors),
        outfit=data.get("outfit") or None,
        exit_button_text=data.get("exitButtonText") or None,
        equip=data.get("equip") or None,
        delay_ms=delay_ms,
        description=data.get("description") or None,
        debug_html=data.get("debug_element_html") or None,
    )


def record_to_dict(record: ActionRecord, selectors: PageSelectors = PageSelectors()) -> Dict[str, Any]:
    out = descriptor_to_dict(record.target, selectors)
    extras = {
        "outfit": record.outfit,
        "exitButtonText": record.exit_button_text,
        "equip": record.equip,
        "delayMs": record.delay_ms,
        "description": record.description,
        "debug_element_html": record.debug_html,
    }
    out.update({k: v for k, v in extras.items() if v is not None})
    return out


def load_recording(text: str, selectors: PageSelectors = PageSelectors()) -> List[ActionRecord]:
    data = _parse_json(text)
    if not isinstance(data, list):
        raise ConfigInvalid("Invalid recording file format: expected an array of actions.")
    records = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise ConfigInvalid(f"Invalid recording file format: action {index} is not an object.")
        if not item.get("type") or not (item.get("buttonText") or item.get("id")):
            raise ConfigInvalid(f"Invalid recording file format: action {index} needs 'type' and 'buttonText' or 'id'.")
        records.append(record_from_dict(item, selectors))
    return records


def save_recording(
    records: Sequence[ActionRecord],
    directory: str | Path,
    selectors: PageSelectors = PageSelectors(),
    now: Optional[datetime] = None,
) -> Path:
    """Write ``fl_actions_<timestamp>.json`` into ``directory`` and return its path."""
    if not records:
        raise ValueError("No actions recorded.")
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"fl_actions_{stamp}.json"
    payload = [record_to_dict(r, selectors) for r in records]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Recording saved to %s", path)
    return path


# ------------------------------ Card rules ------------------------------- #

def load_card_rules(text: str, selectors: PageSelectors = PageSelectors()) -> Dict[str, CardRule]:
    data = _parse_json(text)
    if not isinstance(data, dict):
        raise ConfigInvalid("File is not a valid JSON object.")
    rules = {}
    for event_id, raw in data.items():
        if not isinstance(raw, dict):
            raise ConfigInvalid(f"Rule for card {event_id} is not an object.")
        action = str(raw.get("action") or "").lower()
        if action not in ("play", "discard"):
            raise ConfigInvalid(f"Rule for card {event_id} has unknown action {raw.get('action')!r}.")
        branch = None
        if action == "play":
            if "branch" not in raw:
                raise ConfigInvalid(f"Rule for card {event_id} plays the card but names no branch.")
            branch = parse_descriptor(raw["branch"], selectors)
        rules[str(event_id)] = CardRule(
            action=action,
            description=str(raw.get("description") or event_id),
            branch=branch,
            outfit=raw.get("outfit") or None,
            exit_button_text=raw.get("exitButtonText") or None,
        )
    return rules


# ---------------------------- Branch priorities -------------------------- #

def load_branch_targets(text: str) -> List[BranchTarget]:
    data = _parse_json(text)
    if not isinstance(data, list):
        raise ConfigInvalid("Branch targets must be an array of {title, priority} objects.")
    targets = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict) or not item.get("title"):
            raise ConfigInvalid(f"Branch target {index} needs a 'title'.")
        try:
            priority = int(item.get("priority", 0))
        except (TypeError, ValueError) as e:
            raise ConfigInvalid(f"Branch target {index} has a non-numeric priority.") from e
        targets.append(BranchTarget(title=str(item["title"]), priority=priority))
    return targets


def read_config_text(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigInvalid(f"Cannot read configuration file {path}: {e}") from e


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigInvalid(f"Invalid JSON: {e}") from e
