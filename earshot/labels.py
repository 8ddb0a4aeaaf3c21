"""
Label catalog.

Maps class indices to display names. Loaded once, read-only afterwards,
so concurrent lookups need no locking.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import requests

from earshot.errors import LabelSourceUnavailable

logger = logging.getLogger(__name__)

YAMNET_CLASS_MAP_URL = (
    "https://raw.githubusercontent.com/tensorflow/models/master/"
    "research/audioset/yamnet/yamnet_class_map.csv"
)
DEFAULT_CACHE_PATH = "yamnet_class_map.csv"


class LabelCatalog:
    """
    Index -> display name mapping.

    Unknown indices get a placeholder label instead of an error, so a
    positional mismatch shows up as a visibly wrong label.
    """

    def __init__(self, labels: Mapping[int, str] | None = None) -> None:
        self._labels = MappingProxyType(dict(labels or {}))

    @classmethod
    def empty(cls) -> LabelCatalog:
        """Catalog with no names; every lookup yields a placeholder."""
        return cls()

    @classmethod
    def from_csv(cls, text: str) -> LabelCatalog:
        """
        Parse `index,mid,display_name` rows.

        The header and any row that does not fit the shape are skipped.
        """
        labels: dict[int, str] = {}
        for row in csv.reader(io.StringIO(text)):
            if len(row) < 3:
                continue
            index = row[0].strip()
            if not (index.isascii() and index.isdigit()):
                continue
            name = ",".join(row[2:]).strip().strip('"').strip()
            if not row[1].strip() or not name:
                continue
            labels[int(index)] = name
        return cls(labels)

    @classmethod
    def from_file(cls, path: str | Path) -> LabelCatalog:
        return cls.from_csv(Path(path).read_text(encoding="utf-8"))

    @property
    def labels(self) -> Mapping[int, str]:
        return self._labels

    def label(self, index: int) -> str:
        """Display name for `index`, or a placeholder if unknown."""
        name = self._labels.get(index)
        if name is None:
            return placeholder_label(index)
        return name

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, index: object) -> bool:
        return index in self._labels

    def __repr__(self) -> str:
        return f"LabelCatalog({len(self)} labels)"


def placeholder_label(index: int) -> str:
    """Label used for indices missing from the catalog."""
    return f"Class {index}"


def load_class_map(
    cache_path: str | Path = DEFAULT_CACHE_PATH,
    url: str | None = YAMNET_CLASS_MAP_URL,
    timeout_s: float = 30.0,
) -> LabelCatalog:
    """
    Load the class map from the local cache, downloading it once if missing.

    Args:
        cache_path: Local CSV copy, written after a successful download
        url: Where to fetch the CSV from; None disables downloading
        timeout_s: HTTP timeout

    Raises:
        LabelSourceUnavailable: no cache and the download failed or is disabled
    """
    path = Path(cache_path)

    if path.exists():
        logger.info(f"Loading class map from {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LabelSourceUnavailable(f"Could not read class map {path}: {e}") from e
    else:
        if url is None:
            raise LabelSourceUnavailable(f"Class map {path} not found and downloading is disabled")

        logger.info(f"Downloading class map from {url}")
        try:
            response = requests.get(url, timeout=timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise LabelSourceUnavailable(f"Could not download class map from {url}: {e}") from e

        text = response.text
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not cache class map at {path}: {e}")

    catalog = LabelCatalog.from_csv(text)
    logger.info(f"Loaded {len(catalog)} class labels")
    return catalog
