from __future__ import annotations

import json
import string
from dataclasses import dataclass
from typing import Iterable, Protocol

MOODS = ("Great", "Good", "Okay", "Low", "Exhausted")
DEFAULT_MOOD = "Good"

CUSTOM_QUICK_TAGS_SETTING_KEY = "custom_quick_tag_groups"
HIDDEN_QUICK_TAGS_SETTING_KEY = "hidden_default_quick_tag_groups"

_MOOD_ALIASES = {
    "great": "Great",
    "good": "Good",
    "okay": "Okay",
    "ok": "Okay",
    "low": "Low",
    "exhausted": "Exhausted",
}


def parse_tags(text: str | None) -> list[str]:
    if not text:
        return []
    seen: set[str] = set()
    ordered: list[str] = []
    for part in text.split(","):
        tag = part.strip()
        if not tag:
            continue
        key = tag.lower()
        if key not in seen:
            seen.add(key)
            ordered.append(tag)
    return ordered


def serialize_tags(tags: Iterable[str]) -> str:
    return ", ".join(tags)


def normalize_tags(text: str | None) -> str:
    return serialize_tags(parse_tags(text))


def add_tag(tag: str, text: str | None) -> str:
    current = parse_tags(text)
    tag = tag.strip()
    if tag and tag.lower() not in {existing.lower() for existing in current}:
        current.append(tag)
    return serialize_tags(current)


def remove_tag(tag: str, text: str | None) -> str:
    key = tag.strip().lower()
    return serialize_tags(existing for existing in parse_tags(text) if existing.lower() != key)


def toggle_tag(tag: str, text: str | None) -> str:
    current = parse_tags(text)
    key = tag.strip().lower()
    for index, existing in enumerate(current):
        if existing.lower() == key:
            del current[index]
            return serialize_tags(current)
    if key:
        current.append(tag.strip())
    return serialize_tags(current)


def canonical_mood(mood: str | None) -> str:
    normalized = (mood or "").strip().lower()
    if not normalized:
        return DEFAULT_MOOD
    return _MOOD_ALIASES.get(normalized, string.capwords(normalized))


def merge_tags_preserving_order(primary: Iterable[str], secondary: Iterable[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for tag in [*primary, *secondary]:
        trimmed = tag.strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key not in seen:
            seen.add(key)
            merged.append(trimmed)
    return merged


@dataclass(frozen=True)
class QuickTagGroup:
    title: str
    tags: tuple[str, ...]


DEFAULT_QUICK_TAG_GROUPS = (
    QuickTagGroup("Growth", ("Work", "Study", "Projects", "Hobbies")),
    QuickTagGroup("Energy/Wellness", ("Exercise", "Health", "Rest", "Recovery")),
    QuickTagGroup("Connection", ("Family", "Friends", "Partner", "Social")),
    QuickTagGroup("Living", ("Nature", "Home", "Travel", "Errands")),
)


def decode_tag_groups(text: str | None) -> dict[str, list[str]]:
    if not text:
        return {}
    try:
        raw = json.loads(text)
    except json.JSONDecodeError:
        return {}
    if not isinstance(raw, dict):
        return {}
    groups: dict[str, list[str]] = {}
    for title, tags in raw.items():
        if not isinstance(tags, list):
            continue
        cleaned = merge_tags_preserving_order([], (str(tag) for tag in tags if isinstance(tag, str)))
        if cleaned:
            groups[str(title)] = cleaned
    return groups


def encode_tag_groups(groups: dict[str, list[str]]) -> str:
    if not groups:
        return "{}"
    return json.dumps(groups, sort_keys=True)


class SettingsStore(Protocol):
    def get_setting(self, key: str, default: str | None = None) -> str | None: ...

    def set_setting(self, key: str, value: str) -> None: ...


class QuickTagCatalog:
    """User-editable quick tags layered over the built-in groups.

    Custom tags are added per group; built-in tags can only be hidden.
    """

    def __init__(
        self,
        custom: dict[str, list[str]] | None = None,
        hidden: dict[str, list[str]] | None = None,
    ):
        self.custom: dict[str, list[str]] = {k: list(v) for k, v in (custom or {}).items()}
        self.hidden: dict[str, list[str]] = {k: list(v) for k, v in (hidden or {}).items()}

    @classmethod
    def from_settings(cls, store: SettingsStore) -> QuickTagCatalog:
        return cls(
            custom=decode_tag_groups(store.get_setting(CUSTOM_QUICK_TAGS_SETTING_KEY, "{}")),
            hidden=decode_tag_groups(store.get_setting(HIDDEN_QUICK_TAGS_SETTING_KEY, "{}")),
        )

    def save(self, store: SettingsStore) -> None:
        store.set_setting(CUSTOM_QUICK_TAGS_SETTING_KEY, encode_tag_groups(self.custom))
        store.set_setting(HIDDEN_QUICK_TAGS_SETTING_KEY, encode_tag_groups(self.hidden))

    @property
    def titles(self) -> list[str]:
        return [group.title for group in DEFAULT_QUICK_TAG_GROUPS]

    def groups(self) -> list[QuickTagGroup]:
        result: list[QuickTagGroup] = []
        for base in DEFAULT_QUICK_TAG_GROUPS:
            hidden = {tag.lower() for tag in self.hidden.get(base.title, [])}
            visible = [tag for tag in base.tags if tag.lower() not in hidden]
            merged = merge_tags_preserving_order(visible, self.custom.get(base.title, []))
            result.append(QuickTagGroup(base.title, tuple(merged)))
        return result

    def is_custom_tag(self, tag: str, category: str) -> bool:
        return _contains(self.custom.get(category, []), tag)

    def is_default_tag(self, tag: str, category: str) -> bool:
        for group in DEFAULT_QUICK_TAG_GROUPS:
            if group.title == category:
                return _contains(group.tags, tag)
        return False

    def add_custom_tag(self, tag: str, category: str) -> None:
        tag = tag.strip()
        if not category or not tag:
            return
        tags = self.custom.setdefault(category, [])
        if not _contains(tags, tag):
            tags.append(tag)

    def remove_custom_tag(self, tag: str, category: str) -> None:
        if category not in self.custom:
            return
        remaining = [existing for existing in self.custom[category] if existing.lower() != tag.lower()]
        if remaining:
            self.custom[category] = remaining
        else:
            del self.custom[category]

    def hide_default_tag(self, tag: str, category: str) -> None:
        if not category:
            return
        tags = self.hidden.setdefault(category, [])
        if not _contains(tags, tag):
            tags.append(tag)

    def delete_tag(self, tag: str, category: str) -> None:
        if self.is_custom_tag(tag, category):
            self.remove_custom_tag(tag, category)
        elif self.is_default_tag(tag, category):
            self.hide_default_tag(tag, category)

    def move_tag(self, tag: str, source: str, destination: str) -> None:
        if not source or not destination or source == destination:
            return
        if self.is_custom_tag(tag, source):
            self.remove_custom_tag(tag, source)
            self.add_custom_tag(tag, destination)
        elif self.is_default_tag(tag, source):
            self.hide_default_tag(tag, source)
            self.add_custom_tag(tag, destination)


def _contains(tags: Iterable[str], tag: str) -> bool:
    key = tag.strip().lower()
    return any(existing.lower() == key for existing in tags)
