"""Family roster loading from YAML."""

import logging
from pathlib import Path
from typing import Dict, Union

import yaml

from ...core.config.yaml_loader import YAMLConfigLoader
from ...core.exceptions import ConfigurationError
from .types import FamilyMember

logger = logging.getLogger(__name__)


def load_roster(path: Union[str, Path]) -> Dict[str, FamilyMember]:
    """Load family members from a YAML roster, keyed by username.

    The file holds a ``members`` list whose items follow ``FamilyMember.to_dict``.
    """
    try:
        data = YAMLConfigLoader.load_yaml(Path(path))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read roster {path}: {e}",
            error_code="INVALID_ROSTER",
            component="Roster",
        ) from e

    members: Dict[str, FamilyMember] = {}
    for index, member_data in enumerate(data.get("members", []) or []):
        try:
            member = FamilyMember.from_dict(member_data)
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid roster entry #{index} in {path}: {e}",
                error_code="INVALID_ROSTER",
                component="Roster",
            ) from e
        members[member.username] = member

    logger.info(f"Loaded {len(members)} family members from {path}")
    return members
