# File: modulegen/resources.py
"""
ModuleGen - Resource / Collection Synthesizer
===============================================
``toArray`` projection for the JSON resource (id, every field, every
relation through ``whenLoaded``) and the collection's name placeholders.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from modulegen.models import ModelConfiguration

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.resources")


def build_projection(config: ModelConfiguration) -> List[str]:
    lines: List[str] = ["'id' => $this->id,"]
    lines.extend(f"'{name}' => $this->{name}," for name in config.fields)
    lines.extend(
        f"'{name}' => $this->whenLoaded('{name}'),"
        for name in config.relations
    )
    return lines


def synthesize_resource(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``resource`` stub."""
    return {
        "model": config.studly_name,
        "class": config.classes.resource,
        "fields": "\n            ".join(build_projection(config)),
    }


def synthesize_collection(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``collection`` stub."""
    return {
        "model": config.studly_name,
        "class": config.classes.collection,
        "modelVar": config.camel_name,
    }


__all__: List[str] = [
    "build_projection",
    "synthesize_resource",
    "synthesize_collection",
]

logger.debug("modulegen.resources loaded.")
