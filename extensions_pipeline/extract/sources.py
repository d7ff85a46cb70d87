# extensions_pipeline/extract/sources.py
"""
Readers for the JSON inputs of the extensions pipeline.

Two files are consumed:

1. The metadata file: a JSON array of extension descriptors with keys
   ``id, name, author, description, category, usersCount, rating,
   ratingsCount, analyticsId, website, inApp``.

2. The requests file: a JSON array of groups shaped like
   ``{"id": ..., "requests": [{"method", "url", "originUrl", "type", "body"}]}``.

Both are parsed into small dataclasses so the loader works with
snake_case attributes instead of raw dicts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple


@dataclass
class ExtensionDescriptor:
    """
    Metadata of a single browser extension.

    Parameters
    ----------
    id:
        Extension identifier; also the stem of its ``.crx`` archive.
    users_count, rating, ratings_count:
        Store statistics, passed through as found in the file.
    in_app:
        Whether the extension offers in-app purchases.
    """
    id: str
    name: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    users_count: Optional[int] = None
    rating: Optional[float] = None
    ratings_count: Optional[int] = None
    analytics_id: Optional[str] = None
    website: Optional[str] = None
    in_app: Optional[bool] = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "ExtensionDescriptor":
        if not isinstance(raw, dict) or raw.get("id") is None:
            raise ValueError(f"Extension descriptor without an id: {raw!r}")

        return cls(
            id=str(raw["id"]),
            name=raw.get("name"),
            author=raw.get("author"),
            description=raw.get("description"),
            category=raw.get("category"),
            users_count=raw.get("usersCount"),
            rating=raw.get("rating"),
            ratings_count=raw.get("ratingsCount"),
            analytics_id=raw.get("analyticsId"),
            website=raw.get("website"),
            in_app=raw.get("inApp"),
        )

    def as_row(self) -> Tuple[Any, ...]:
        """Column values in ``extensions.extensions`` order."""
        return (
            self.id,
            self.name,
            self.author,
            self.description,
            self.category,
            self.users_count,
            self.rating,
            self.ratings_count,
            self.analytics_id,
            self.website,
            self.in_app,
        )


@dataclass
class RecordedRequest:
    """One network request captured while an extension was running."""
    method: Optional[str] = None
    url: Optional[str] = None
    origin_url: Optional[str] = None
    type: Optional[str] = None
    body: Any = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "RecordedRequest":
        if not isinstance(raw, dict):
            raise ValueError(f"Recorded request is not an object: {raw!r}")

        body = raw.get("body")
        # Objects and arrays alike are stored as JSON text
        if isinstance(body, (dict, list)):
            body = json.dumps(body)

        return cls(
            method=raw.get("method"),
            url=raw.get("url"),
            origin_url=raw.get("originUrl"),
            type=raw.get("type"),
            body=body,
        )


@dataclass
class RequestGroup:
    """All recorded requests of one extension, in capture order."""
    extension_id: str
    requests: List[RecordedRequest] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "RequestGroup":
        if not isinstance(raw, dict) or raw.get("id") is None:
            raise ValueError(f"Request group without an id: {raw!r}")

        requests = raw.get("requests")
        if not isinstance(requests, list):
            raise ValueError(f"Request group {raw['id']!r} has no requests array")

        return cls(
            extension_id=str(raw["id"]),
            requests=[RecordedRequest.from_json(r) for r in requests],
        )

    def rows(self) -> Iterator[Tuple[Any, ...]]:
        """Column values in ``extensions.requests`` order, one per request."""
        for request in self.requests:
            yield (
                self.extension_id,
                request.method,
                request.url,
                request.origin_url,
                request.type,
                request.body,
            )


def _read_json_array(path: Path) -> list:
    with Path(path).open("r", encoding="utf8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array in {path}, got {type(data).__name__}")
    return data


def read_extension_entries(meta_path: Path) -> List[Any]:
    """
    Load the extensions metadata file as raw array elements.

    Only whole-file problems are raised here; each element is turned
    into an :class:`ExtensionDescriptor` by the loader, so one bad
    element does not discard the others.

    Raises
    ------
    json.JSONDecodeError
        If the file is not valid JSON.
    ValueError
        If the file is not an array.
    """
    return _read_json_array(meta_path)


def read_request_entries(requests_path: Path) -> List[Any]:
    """Load the recorded-requests file as raw groups, keeping file order."""
    return _read_json_array(requests_path)
