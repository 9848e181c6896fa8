"""Randomized team partitioning under two soft fairness objectives.

This is a bounded-effort heuristic, not an optimizer:

- Members are shuffled first, so two runs on the same roster give different
  but statistically similar teams.
- Gender mode assigns each gender group in turn to the currently smallest
  teams. Team sizes end up even, but a heavily skewed group can still leave
  some teams with a poor gender ratio.
- Diversity mode spreads each organization round-robin over the teams and then
  moves members from the largest to the smallest team until every team holds
  ``floor(total / team_count)`` or ``ceil(total / team_count)`` members.
  Gender mode is never rebalanced.
"""

import math
import random
from typing import Callable, Dict, Hashable, List, Optional, Sequence

from jumbler.domain.fairness_scores import (
    calculate_diversity_score,
    calculate_gender_balance_score,
)
from jumbler.domain.palette import make_empty_teams
from jumbler.models.session_models import (
    FairnessConfigModel,
    MemberModel,
    PartitionResultModel,
    TeamModel,
)

# gender_balance_weight must exceed this for gender mode to win
GENDER_MODE_THRESHOLD = 0.5


def group_members(
    members: Sequence[MemberModel], key: Callable[[MemberModel], Hashable]
) -> Dict[Hashable, List[MemberModel]]:
    """Group members by ``key``, groups and members in first-seen order."""
    groups: Dict[Hashable, List[MemberModel]] = {}
    for member in members:
        groups.setdefault(key(member), []).append(member)
    return groups


def uses_gender_mode(config: FairnessConfigModel) -> bool:
    return config.balance_gender and config.gender_balance_weight > GENDER_MODE_THRESHOLD


def distribute_with_gender_balance(
    members: Sequence[MemberModel], teams: List[TeamModel]
) -> None:
    """Assign every member to the team that currently has the fewest members.

    Ties go to the lowest team index. One gender group is placed completely
    before the next one starts.
    """
    for group in group_members(members, lambda m: m.gender).values():
        for member in group:
            target = min(teams, key=lambda team: len(team.members))
            target.members.append(member)


def distribute_with_diversity_focus(
    members: Sequence[MemberModel], teams: List[TeamModel]
) -> None:
    """Spread each organization round-robin across teams, then even out sizes."""
    for group in group_members(members, lambda m: m.organization).values():
        for position, member in enumerate(group):
            teams[position % len(teams)].members.append(member)
    rebalance_team_sizes(teams, len(members))


def rebalance_team_sizes(teams: List[TeamModel], total: int) -> int:
    """Move members from the largest team to the smallest one.

    Each move takes the largest team's last member. The loop stops once no team
    is above ``ceil(total / len(teams))`` and none is below
    ``floor(total / len(teams))``. The order of ``teams`` is left untouched.

    Args:
        teams (List[TeamModel]): Teams to rebalance in place
        total (int): Number of members across all teams

    Returns:
        int: Number of members moved
    """
    base_size = total // len(teams)
    max_size = math.ceil(total / len(teams))
    by_size = sorted(teams, key=lambda team: len(team.members), reverse=True)
    moves = 0
    while len(by_size[0].members) > max_size or len(by_size[-1].members) < base_size:
        largest, smallest = by_size[0], by_size[-1]
        if len(largest.members) - len(smallest.members) < 2:
            break
        smallest.members.append(largest.members.pop())
        moves += 1
        by_size.sort(key=lambda team: len(team.members), reverse=True)
    return moves


def partition(
    members: Sequence[MemberModel],
    config: FairnessConfigModel,
    rng: Optional[random.Random] = None,
) -> PartitionResultModel:
    """Split members into ``config.team_count`` teams and score the outcome.

    The configuration is expected to be validated already (team count of at
    least one, weights in [0, 1]).

    Args:
        members (Sequence[MemberModel]): Current roster of the session
        config (FairnessConfigModel): Team count and objective selection
        rng (Optional[random.Random]): Source of randomness, a fresh one if omitted

    Returns:
        PartitionResultModel: Teams in index order with diversity and gender balance scores
    """
    if not members:
        return PartitionResultModel(teams=[], diversity_score=0, gender_balance_score=0)

    rng = rng or random.Random()
    teams = make_empty_teams(config.team_count)

    shuffled = list(members)
    rng.shuffle(shuffled)

    if uses_gender_mode(config):
        distribute_with_gender_balance(shuffled, teams)
    else:
        distribute_with_diversity_focus(shuffled, teams)

    return PartitionResultModel(
        teams=teams,
        diversity_score=calculate_diversity_score(teams),
        gender_balance_score=calculate_gender_balance_score(teams),
    )
