"""Fairness metrics for a finished partition.

Both scores are integers in [0, 100]. An empty team contributes 0 to the
average instead of dividing by zero.
"""

from collections import Counter
from typing import List

import numpy as np

from jumbler.models.session_models import TeamModel


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(np.floor(value + 0.5))


def team_diversity_ratio(team: TeamModel) -> float:
    """Distinct organizations in the team divided by the team size."""
    if not team.members:
        return 0.0
    organizations = {member.organization for member in team.members}
    return len(organizations) / len(team.members)


def team_gender_balance(team: TeamModel) -> float:
    """Smallest over largest count among the gender categories present.

    A team where fewer than two categories are present scores 0.
    """
    counts = Counter(member.gender for member in team.members)
    if len(counts) < 2:
        return 0.0
    values = list(counts.values())
    return min(values) / max(values)


def calculate_diversity_score(teams: List[TeamModel]) -> int:
    """Average diversity ratio over all teams, scaled to 0..100.

    Args:
        teams (List[TeamModel]): Teams with their final members

    Returns:
        int: Diversity score, 0 when there are no teams
    """
    if not teams:
        return 0
    ratios = np.array([team_diversity_ratio(team) for team in teams])
    return round_half_up(float(np.mean(ratios)) * 100)


def calculate_gender_balance_score(teams: List[TeamModel]) -> int:
    """Average gender balance over all teams, scaled to 0..100.

    Args:
        teams (List[TeamModel]): Teams with their final members

    Returns:
        int: Gender balance score, 0 when there are no teams
    """
    if not teams:
        return 0
    balances = np.array([team_gender_balance(team) for team in teams])
    return round_half_up(float(np.mean(balances)) * 100)
