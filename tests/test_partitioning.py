import random

import pytest

from jumbler.domain.fairness_scores import (
    calculate_diversity_score,
    calculate_gender_balance_score,
)
from jumbler.domain.palette import PALETTE_SIZE, TEAM_COLORS, TEAM_NAMES, make_empty_teams
from jumbler.domain.partitioning import (
    partition,
    rebalance_team_sizes,
    uses_gender_mode,
)
from jumbler.models.session_models import FairnessConfigModel, GenderModel, MemberModel


def sizes(result):
    return [len(team.members) for team in result.teams]


@pytest.mark.parametrize("member_count", [1, 2, 5, 6, 7, 13, 30])
@pytest.mark.parametrize("team_count", [1, 2, 3, 4, 10])
@pytest.mark.parametrize("balance_gender", [False, True])
def test_partition_is_a_disjoint_cover(make_members, member_count, team_count, balance_gender):
    members = make_members(
        member_count,
        organizations=("MIT", "CMU", "ETH"),
        genders=(GenderModel.male, GenderModel.female, GenderModel.other),
    )
    config = FairnessConfigModel(
        team_count=team_count, balance_gender=balance_gender, gender_balance_weight=0.9
    )
    for seed in range(5):
        result = partition(members, config, rng=random.Random(seed))

        assert len(result.teams) == team_count
        assigned = [member.id for team in result.teams for member in team.members]
        assert len(assigned) == member_count
        assert sorted(assigned) == sorted(member.id for member in members)
        assert [team.index for team in result.teams] == list(range(team_count))
        assert 0 <= result.diversity_score <= 100
        assert 0 <= result.gender_balance_score <= 100
        assert isinstance(result.diversity_score, int)
        assert isinstance(result.gender_balance_score, int)


@pytest.mark.parametrize("balance_gender", [False, True])
def test_team_sizes_differ_by_at_most_one(make_members, balance_gender):
    members = make_members(
        17, organizations=("A", "B", "C", "D", "E"), genders=(GenderModel.male,)
    )
    config = FairnessConfigModel(team_count=4, balance_gender=balance_gender, gender_balance_weight=1.0)
    for seed in range(10):
        result = partition(members, config, rng=random.Random(seed))
        assert max(sizes(result)) - min(sizes(result)) <= 1


def test_empty_roster_yields_no_teams():
    result = partition([], FairnessConfigModel(team_count=3))

    assert result.teams == []
    assert result.diversity_score == 0
    assert result.gender_balance_score == 0


def test_more_teams_than_members_scores_without_dividing_by_zero(make_members):
    members = make_members(3, organizations=("A", "B", "C"))
    result = partition(members, FairnessConfigModel(team_count=5), rng=random.Random(1))

    assert len(result.teams) == 5
    assert sorted(sizes(result)) == [0, 0, 1, 1, 1]
    # three single-member teams score 1, two empty teams score 0
    assert result.diversity_score == 60
    assert result.gender_balance_score == 0


def test_distinct_organizations_one_member_per_team_scores_100(make_members):
    members = make_members(4, organizations=("A", "B", "C", "D"))
    result = partition(members, FairnessConfigModel(team_count=4), rng=random.Random(3))

    assert sizes(result) == [1, 1, 1, 1]
    assert result.diversity_score == 100


def test_single_organization_scores_inverse_team_size(make_members):
    members = make_members(6, organizations=("Solo U",))
    result = partition(members, FairnessConfigModel(team_count=2), rng=random.Random(5))

    assert sizes(result) == [3, 3]
    assert result.diversity_score == round(100 / 3)


def test_two_organizations_of_three_split_into_two_teams_of_three(make_members):
    members = make_members(6, organizations=("North", "South"))
    for seed in range(10):
        result = partition(members, FairnessConfigModel(team_count=2), rng=random.Random(seed))

        assert sizes(result) == [3, 3]
        assert result.diversity_score == calculate_diversity_score(result.teams)
        assert result.gender_balance_score == calculate_gender_balance_score(result.teams)
        assert 67 <= result.diversity_score <= 100


def test_gender_mode_splits_even_groups_evenly(make_members):
    members = make_members(8, organizations=("A",), genders=(GenderModel.male, GenderModel.female))
    config = FairnessConfigModel(team_count=2, balance_gender=True, gender_balance_weight=0.8)
    for seed in range(5):
        result = partition(members, config, rng=random.Random(seed))
        assert sizes(result) == [4, 4]
        assert result.gender_balance_score == 100


def test_gender_mode_requires_weight_above_half():
    assert uses_gender_mode(FairnessConfigModel(balance_gender=True, gender_balance_weight=0.51))
    assert not uses_gender_mode(FairnessConfigModel(balance_gender=True, gender_balance_weight=0.5))
    assert not uses_gender_mode(FairnessConfigModel(balance_gender=False, gender_balance_weight=1.0))


def test_gender_mode_fills_smallest_team_first():
    members = [
        MemberModel(id=f"w{i}", organization="A", gender=GenderModel.female) for i in range(3)
    ]
    config = FairnessConfigModel(team_count=3, balance_gender=True, gender_balance_weight=1.0)
    result = partition(members, config, rng=random.Random(0))

    assert sizes(result) == [1, 1, 1]


def test_same_seed_gives_same_teams(make_members):
    members = make_members(12, organizations=("A", "B", "C"))
    config = FairnessConfigModel(team_count=3)

    first = partition(members, config, rng=random.Random(42))
    second = partition(members, config, rng=random.Random(42))

    assert first == second


def test_rebalance_moves_from_largest_to_smallest_and_keeps_order(make_members):
    teams = make_empty_teams(2)
    teams[0].members.extend(make_members(5))

    moves = rebalance_team_sizes(teams, 5)

    assert moves == 2
    assert [team.index for team in teams] == [0, 1]
    assert [len(team.members) for team in teams] == [3, 2]
    # the last members of the largest team are the ones moved
    assert [m.id for m in teams[1].members] == ["m4", "m3"]


def test_rebalance_leaves_balanced_teams_alone(make_members):
    teams = make_empty_teams(3)
    members = make_members(7)
    for i, member in enumerate(members):
        teams[i % 3].members.append(member)

    assert rebalance_team_sizes(teams, 7) == 0


def test_palette_cycles_after_ten_teams():
    teams = make_empty_teams(12)

    assert PALETTE_SIZE == 10
    assert teams[10].name == TEAM_NAMES[0]
    assert teams[11].color == TEAM_COLORS[1]
    assert teams[3].name == "Cyber Phoenixes"
