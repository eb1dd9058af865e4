"""
Catalog Loader

Registers extra topologies, load profiles, user behaviors and transaction
patterns from a YAML file. Every entry goes through the same validating
operations as a runtime request, so a bad file fails loudly.

    user_behaviors:
      - id: arbitrage-bot
        name: Arbitrage Bot
        typeWeights: {defi: 0.8, transfer: 0.2}
        timing: burst
    patterns:
      - id: bot-heavy
        name: Bot heavy
        behaviorWeights: {arbitrage-bot: 0.7, retail-trader: 0.3}
    load_profiles:
      - name: Short soak
        phases:
          - {name: soak, duration: 600, targetTps: 250, rampRate: 5}
    topologies:
      - name: Two regions
        regions: [us-east, eu-west]
        node_counts: {validators: 2, miners: 1, full_nodes: 1}
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from netharness.application.services.profile_store import ProfileStore
from netharness.application.services.topology_registry import TopologyRegistry
from netharness.domain.errors import InvalidSpecError

logger = logging.getLogger(__name__)

SECTIONS = ("user_behaviors", "patterns", "load_profiles", "topologies")


def read_catalog(path: Union[str, Path]) -> Dict[str, List[Dict[str, Any]]]:
    """Parse a catalog file; sections missing from the file come back empty."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidSpecError(f"Catalog {path} must be a mapping of sections")

    catalog = {}
    for section in SECTIONS:
        entries = data.get(section) or data.get(section.replace("_", "-")) or []
        if not isinstance(entries, list):
            raise InvalidSpecError(f"Catalog section '{section}' must be a list")
        catalog[section] = entries
    unknown = set(data) - set(SECTIONS) - {s.replace("_", "-") for s in SECTIONS}
    if unknown:
        logger.warning(f"Ignoring unknown catalog sections: {', '.join(sorted(unknown))}")
    return catalog


def load_catalog(
    path: Union[str, Path],
    registry: TopologyRegistry,
    profiles: ProfileStore,
) -> Dict[str, List[str]]:
    """
    Register every entry of a catalog file.

    Behaviors are registered before the patterns that mix them, and patterns
    before the profiles that reference them.

    Returns:
        Ids registered per section.
    """
    catalog = read_catalog(path)
    loaded: Dict[str, List[str]] = {section: [] for section in SECTIONS}

    for spec in catalog["user_behaviors"]:
        loaded["user_behaviors"].append(profiles.create_user_behavior(spec).id)
    for spec in catalog["patterns"]:
        loaded["patterns"].append(profiles.create_pattern(spec).id)
    for spec in catalog["load_profiles"]:
        loaded["load_profiles"].append(profiles.create_custom_load_profile(spec).id)
    for spec in catalog["topologies"]:
        loaded["topologies"].append(registry.create_custom_topology(spec).id)

    logger.info(
        f"Loaded catalog {path}: "
        + ", ".join(f"{len(ids)} {section.replace('_', ' ')}" for section, ids in loaded.items())
    )
    return loaded
