from random import Random

import pytest

from masterysim.core.engine.dice import (
    calculate_raises,
    calculate_total,
    mastery_roll,
    roll_dice,
    roll_exploding_die,
    select_highest_dice,
)


def test_die_explodes_while_total_divides_by_eight(scripted_rng):
    rng = scripted_rng([8, 8, 3])
    res = roll_exploding_die(rng)

    assert res.value == 19
    assert res.exploded is True
    assert res.faces == [8, 8, 3]


def test_die_stops_after_non_eight(scripted_rng):
    rng = scripted_rng([8, 5, 8])
    res = roll_exploding_die(rng)

    assert res.value == 13
    # третья грань не запрашивалась
    assert rng.faces == [8]


def test_plain_die_does_not_explode(scripted_rng):
    res = roll_exploding_die(scripted_rng([7]))
    assert res.value == 7
    assert res.exploded is False


@pytest.mark.parametrize("rule", ["running_total", "last_face"])
def test_explosion_rules_agree_on_d8(scripted_rng, rule):
    res = roll_exploding_die(scripted_rng([8, 8, 8, 2]), explosion_rule=rule)
    assert res.value == 26


def test_roll_dice_reports_exploded_indices(scripted_rng):
    dice, exploded = roll_dice(scripted_rng([3, 8, 2, 5]), 3)
    assert dice == [3, 10, 5]
    assert exploded == [1]


def test_roll_zero_dice(scripted_rng):
    rng = scripted_rng([])
    assert roll_dice(rng, 0) == ([], [])
    assert rng.calls == 0


def test_exploded_dice_never_end_on_multiple_of_eight():
    dice, _ = roll_dice(Random(7), 200)
    assert len(dice) == 200
    assert all(d % 8 != 0 for d in dice)


def test_select_highest_keeps_positions_sorted():
    assert select_highest_dice([3, 10, 5, 7], 2) == [1, 3]
    assert select_highest_dice([3, 10, 5, 7], 0) == []
    # keep больше числа костей -> все
    assert select_highest_dice([4, 2], 5) == [0, 1]


def test_calculate_total():
    assert calculate_total([3, 10, 5, 7], [1, 3]) == 17
    assert calculate_total([3, 10], []) == 0


@pytest.mark.parametrize(
    "total, tn, raises",
    [(16, 16, 0), (19, 16, 0), (20, 16, 1), (23, 16, 1), (24, 16, 2), (10, 16, 0)],
)
def test_raises_every_four_over_tn(total, tn, raises):
    assert calculate_raises(total, tn) == raises


def test_mastery_roll_keeps_highest_and_adds_skill(scripted_rng):
    rng = scripted_rng([6, 8, 4, 3])
    roll = mastery_roll(rng, num_dice=3, keep_dice=2, skill=4, tn=16)

    assert roll.dice == [6, 12, 3]
    assert roll.exploded == [1]
    assert roll.kept_indices == [0, 1]
    assert roll.kept == [6, 12]
    assert roll.dice_total == 18
    assert roll.total == 22
    assert roll.success is True
    assert roll.raises == 1
    assert roll.formula == "3k2 + 4"


def test_mastery_roll_without_tn_always_succeeds(scripted_rng):
    roll = mastery_roll(scripted_rng([1, 2]), num_dice=2, keep_dice=1)

    assert roll.total == 2
    assert roll.success is True
    assert roll.raises == 0
    assert roll.formula == "2k1"


def test_mastery_roll_failure_has_no_raises(scripted_rng):
    roll = mastery_roll(scripted_rng([2, 3]), num_dice=2, keep_dice=2, tn=20)
    assert roll.success is False
    assert roll.raises == 0
