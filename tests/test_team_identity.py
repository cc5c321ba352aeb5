"""Tests for team identity lookup and fixture parsing."""

from __future__ import annotations

from pitchside.utils.team_identity import (
    FALLBACK_BG,
    FLAG_ENGLAND,
    FLAG_NEUTRAL,
    OTHER_ROUND,
    fallback_short_code,
    is_home_fixture,
    parse_teams,
    resolve_team,
    round_group,
)


def test_resolve_team_known_names_any_case() -> None:
    assert resolve_team("Liverpool FC").short == "LFC"
    assert resolve_team("MANCHESTER CITY").short == "MCI"
    assert resolve_team("Nottm Forest").short == "NFO"
    assert resolve_team("England").flag == FLAG_ENGLAND
    assert resolve_team("Brazil").flag == "\U0001F1E7\U0001F1F7"


def test_resolve_team_fallback_never_fails() -> None:
    identity = resolve_team("Real Sociedad Reserves")
    unknown = resolve_team("Atlético Ottawa")

    assert identity.short == "RSR"
    assert unknown.bg == FALLBACK_BG
    assert unknown.flag == FLAG_NEUTRAL
    assert unknown.short == "AO"


def test_fallback_short_code() -> None:
    assert fallback_short_code("Bohemian Football Club") == "BFC"
    assert fallback_short_code("lowercase united") == "LOW"


def test_parse_teams() -> None:
    assert parse_teams("Liverpool vs Arsenal") == ("Liverpool", "Arsenal")
    assert parse_teams("England VS. Wales") == ("England", "Wales")
    assert parse_teams("Charity Shield") == ("Charity Shield", "")


def test_is_home_fixture() -> None:
    assert is_home_fixture("Liverpool vs Arsenal", "liverpool")
    assert not is_home_fixture("Arsenal vs Liverpool", "Liverpool")


def test_round_group() -> None:
    assert round_group("Group A") == "Group Stage"
    assert round_group("Semi-Final") == "Semi-Final"
    assert round_group(None) == OTHER_ROUND
    assert round_group("") == OTHER_ROUND
