"""Sites file loading.

The sites file is JSON, either a plain list of entries or an object with a
``SiteChecks`` list::

    {"SiteChecks": [{"url": "https://example.com", "interval": 60, "searchString": "Welcome"}]}
"""
import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from .schemas.site_check import SiteCheckEntry

logger = logging.getLogger(__name__)


def parse_site_checks(data) -> List[SiteCheckEntry]:
    """Validate raw sites data, skipping entries that are not usable."""
    if isinstance(data, dict):
        data = data.get("SiteChecks", data.get("site_checks", []))
    if not isinstance(data, list):
        raise ValueError("Sites configuration must be a list of site entries")

    entries = []
    for index, raw in enumerate(data):
        try:
            entries.append(SiteCheckEntry.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping site entry #{index}: {e.errors()[0]['msg']}")
    return entries


def load_site_checks(path: Union[str, Path]) -> List[SiteCheckEntry]:
    """Load the configured sites from a JSON file.

    A missing or malformed file raises; individual bad entries are skipped.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)

    entries = parse_site_checks(data)
    logger.info(f"Loaded {len(entries)} site checks from {path}")
    return entries
