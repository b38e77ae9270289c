"""
Random team forest generator for development databases.

Teams are created first without parents. Afterwards each team except the
first gets, with a configurable probability, a parent picked uniformly among
the teams created before it. Parents always precede their children, so the
generated parent graph is acyclic.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from tqdm import tqdm

from .database_manager import DatabaseManager


logger = logging.getLogger(__name__)


_ADJECTIVES = [
    "Agile", "Bright", "Central", "Coastal", "Digital", "Dynamic", "Global",
    "Green", "Integrated", "Lunar", "Modern", "Northern", "Prime", "Rapid",
    "Silver", "Solar", "Southern", "Strategic", "United", "Vertical",
]

_NOUNS = [
    "Analytics", "Apps", "Cloud", "Commerce", "Data", "Design", "Devices",
    "Finance", "Growth", "Infrastructure", "Labs", "Logistics", "Markets",
    "Mobile", "Operations", "Platform", "Research", "Security", "Systems",
    "Ventures",
]

_SUFFIXES = ["Group", "Team", "Unit", "Squad", "Guild", "Office", "Studio"]


@dataclass(frozen=True)
class SeedConfig:
    """
    Parameters for generating a team forest.

    Attributes:
        team_count: Number of teams to create.
        parent_probability: Probability that a team after the first gets a
            parent.
        random_seed: Optional seed for reproducible output.
    """

    team_count: int = 100
    parent_probability: float = 0.5
    random_seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.team_count < 0:
            raise ValueError(f"team_count must be non-negative, got {self.team_count}")
        if not 0.0 <= self.parent_probability <= 1.0:
            raise ValueError(
                f"parent_probability must be between 0.0 and 1.0, "
                f"got {self.parent_probability}"
            )


def generate_team_names(count: int, rng: random.Random) -> List[str]:
    """
    Generate ``count`` unique team names.

    Names combine an adjective, a noun and a suffix. Once the combinations
    run low a numeric suffix keeps names unique.
    """
    names: List[str] = []
    seen: Set[str] = set()
    while len(names) < count:
        name = (
            f"{rng.choice(_ADJECTIVES)} {rng.choice(_NOUNS)} {rng.choice(_SUFFIXES)}"
        )
        if name in seen:
            name = f"{name} {len(names) + 1}"
        if name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def plan_parent_assignments(
    team_ids: List[int], parent_probability: float, rng: random.Random
) -> List[Tuple[int, int]]:
    """
    Choose parents among earlier teams.

    Args:
        team_ids: Team identifiers in creation order.
        parent_probability: Chance that a given team gets a parent.
        rng: Random source.

    Returns:
        ``(team_id, parent_id)`` pairs; every parent precedes its child in
        ``team_ids``.
    """
    assignments: List[Tuple[int, int]] = []
    for index in tqdm(
        range(1, len(team_ids)), desc="Assigning parents", unit="team", leave=False
    ):
        if rng.random() < parent_probability:
            parent_id = team_ids[rng.randrange(index)]
            assignments.append((team_ids[index], parent_id))
    return assignments


def seed_teams(
    db: DatabaseManager, config: SeedConfig, clear_existing: bool = False
) -> List[int]:
    """
    Populate the store with a random forest.

    Args:
        db: Target store.
        config: Generation parameters.
        clear_existing: Delete all existing teams first.

    Returns:
        Identifiers of the created teams in creation order.

    Raises:
        DatabaseError: If any write fails.
    """
    rng = random.Random(config.random_seed)

    if clear_existing:
        db.delete_all_teams()

    names = generate_team_names(config.team_count, rng)
    team_ids = db.create_teams((name, None) for name in names)

    assignments = plan_parent_assignments(team_ids, config.parent_probability, rng)
    db.update_team_parents(assignments)

    logger.info(
        f"Seeded {len(team_ids)} teams, {len(assignments)} with a parent "
        f"(seed={config.random_seed})"
    )
    return team_ids
