from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from normalizer import normalize

logger = logging.getLogger("orgbot.catalog")


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class Response:
    text: str
    code: str = ""
    sender: str = "bot"


@dataclass(frozen=True)
class CatalogEntry:
    title: str
    keys: Tuple[str, ...]
    response: Response
    # Phrases that select this entry when contained anywhere in the input.
    variations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    revision: str
    entries: Tuple[CatalogEntry, ...]
    default_response: Response
    # Quick-pick prompt titles in display order.
    prompts: Tuple[str, ...] = ()
    _by_key: Mapping[str, CatalogEntry] = field(default_factory=dict, repr=False, compare=False)

    def lookup(self, key: str) -> Optional[CatalogEntry]:
        return self._by_key.get(key)

    def match_variation(self, key: str) -> Optional[CatalogEntry]:
        if not key:
            return None
        for entry in self.entries:
            for variation in entry.variations:
                if variation in key:
                    return entry
        return None

    def titles(self) -> List[str]:
        return [e.title for e in self.entries]

    def keys(self) -> List[str]:
        return sorted(self._by_key)


def build_catalog(
    *,
    revision: str,
    entries: Iterable[CatalogEntry],
    default_response: Optional[Response],
    prompts: Sequence[str] = (),
) -> Catalog:
    """
    Validate catalog entries and index them by strict-normalized key.

    Raises CatalogError on empty keys, a key claimed by two entries, prompts that
    name no entry, or a missing default response.
    """
    if default_response is None or not default_response.text.strip():
        raise CatalogError("catalog needs a non-empty default response")

    by_key: Dict[str, CatalogEntry] = {}
    normalized_entries: List[CatalogEntry] = []
    for entry in entries:
        keys = tuple(dict.fromkeys(normalize(k) for k in (entry.title, *entry.keys)))
        if not all(keys):
            raise CatalogError(f"empty question key in catalog entry {entry.title!r}")
        variations = tuple(normalize(v) for v in entry.variations if normalize(v))
        normalized = CatalogEntry(title=entry.title, keys=keys, response=entry.response, variations=variations)
        for key in keys:
            existing = by_key.get(key)
            if existing is not None:
                raise CatalogError(f"duplicate catalog key {key!r} ({existing.title!r} vs {entry.title!r})")
            by_key[key] = normalized
        normalized_entries.append(normalized)

    for prompt in prompts:
        if normalize(prompt) not in by_key:
            raise CatalogError(f"prompt {prompt!r} has no catalog entry")

    logger.debug("catalog %s: %d entries, %d keys", revision, len(normalized_entries), len(by_key))
    return Catalog(
        revision=revision,
        entries=tuple(normalized_entries),
        default_response=default_response,
        prompts=tuple(prompts),
        _by_key=by_key,
    )


def load_catalog(path: Path) -> Catalog:
    """
    Load a catalog table from JSON.

    Shape:
      {"revision": str,
       "default": {"text": str, "code": str},
       "prompts": [str, ...],
       "entries": [{"title": str, "keys": [str], "variations": [str],
                    "text": str, "code": str}, ...]}
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not read catalog {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CatalogError(f"Expected JSON object in {path}")

    revision = data.get("revision")
    if not isinstance(revision, str) or not revision.strip():
        raise CatalogError(f"Missing/invalid 'revision' in {path}")

    default_obj = data.get("default")
    if not isinstance(default_obj, dict):
        raise CatalogError(f"Missing/invalid 'default' in {path}")
    default_response = _response_from_mapping(default_obj, where=f"{path}: default")

    entries: List[CatalogEntry] = []
    raw_entries = data.get("entries")
    if not isinstance(raw_entries, list):
        raise CatalogError(f"Missing/invalid 'entries' in {path}")
    for idx, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            raise CatalogError(f"{path}: entries[{idx}] is not an object")
        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            raise CatalogError(f"{path}: entries[{idx}] is missing 'title'")
        entries.append(
            CatalogEntry(
                title=title.strip(),
                keys=_str_tuple(raw.get("keys"), where=f"{path}: entries[{idx}].keys"),
                response=_response_from_mapping(raw, where=f"{path}: entries[{idx}]"),
                variations=_str_tuple(raw.get("variations"), where=f"{path}: entries[{idx}].variations"),
            )
        )

    return build_catalog(
        revision=revision.strip(),
        entries=entries,
        default_response=default_response,
        prompts=_str_tuple(data.get("prompts"), where=f"{path}: prompts"),
    )


def _response_from_mapping(raw: Mapping[str, object], *, where: str) -> Response:
    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise CatalogError(f"{where}: missing/invalid 'text'")
    code = raw.get("code")
    if code is None:
        code = ""
    if not isinstance(code, str):
        raise CatalogError(f"{where}: 'code' must be a string")
    return Response(text=text, code=code)


def _str_tuple(value: object, *, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise CatalogError(f"{where}: must be a list of strings")
    return tuple(v for v in value if isinstance(v, str) and v.strip())
