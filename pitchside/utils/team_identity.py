"""
Pitchside — Team & Nation Identity

Static display metadata for clubs and national teams, looked up by
case-insensitive substring of a team name. Lookup never fails: unknown
names get a neutral identity with a derived short code.
"""

from __future__ import annotations

import re
from typing import NamedTuple


def _flag(country_code: str) -> str:
    """Regional-indicator flag emoji for a two-letter ISO code."""
    return "".join(chr(0x1F1E6 + ord(letter) - ord("A")) for letter in country_code.upper())


FLAG_ENGLAND = "\U0001F3F4\U000E0067\U000E0062\U000E0065\U000E006E\U000E0067\U000E007F"
FLAG_WALES = "\U0001F3F4\U000E0067\U000E0062\U000E0077\U000E006C\U000E0073\U000E007F"
FLAG_NEUTRAL = "\U0001F3F3\uFE0F"

FALLBACK_BG = "#334155"
FALLBACK_FG = "#fff"


class TeamIdentity(NamedTuple):
    bg: str
    fg: str
    short: str
    flag: str


# Keys are lowercase. First key contained in the name wins, so more
# specific keys must come before keys they contain.
TEAM_MAP: dict[str, TeamIdentity] = {
    # Premier League clubs
    "liverpool": TeamIdentity("#C8102E", "#fff", "LFC", FLAG_ENGLAND),
    "arsenal": TeamIdentity("#EF0107", "#fff", "ARS", FLAG_ENGLAND),
    "manchester city": TeamIdentity("#6CABDD", "#1C2C5B", "MCI", FLAG_ENGLAND),
    "man city": TeamIdentity("#6CABDD", "#1C2C5B", "MCI", FLAG_ENGLAND),
    "chelsea": TeamIdentity("#034694", "#fff", "CHE", FLAG_ENGLAND),
    "manchester united": TeamIdentity("#DA291C", "#FBE122", "MUN", FLAG_ENGLAND),
    "man united": TeamIdentity("#DA291C", "#FBE122", "MUN", FLAG_ENGLAND),
    "tottenham": TeamIdentity("#132257", "#fff", "TOT", FLAG_ENGLAND),
    "spurs": TeamIdentity("#132257", "#fff", "TOT", FLAG_ENGLAND),
    "wolves": TeamIdentity("#FDB913", "#231F20", "WOL", FLAG_ENGLAND),
    "newcastle": TeamIdentity("#241F20", "#fff", "NEW", FLAG_ENGLAND),
    "everton": TeamIdentity("#003399", "#fff", "EVE", FLAG_ENGLAND),
    "aston villa": TeamIdentity("#7B003C", "#95BFE5", "AVL", FLAG_ENGLAND),
    "west ham": TeamIdentity("#7A263A", "#1BB1E7", "WHU", FLAG_ENGLAND),
    "brighton": TeamIdentity("#0057B8", "#FFCD00", "BHA", FLAG_ENGLAND),
    "brentford": TeamIdentity("#E30613", "#fff", "BRE", FLAG_ENGLAND),
    "fulham": TeamIdentity("#CC0000", "#fff", "FUL", FLAG_ENGLAND),
    "nottingham forest": TeamIdentity("#DD0000", "#fff", "NFO", FLAG_ENGLAND),
    "nottm forest": TeamIdentity("#DD0000", "#fff", "NFO", FLAG_ENGLAND),
    "crystal palace": TeamIdentity("#1B458F", "#A7A5A6", "CRY", FLAG_ENGLAND),
    "leicester": TeamIdentity("#003090", "#FDBE11", "LEI", FLAG_ENGLAND),
    "southampton": TeamIdentity("#D71920", "#fff", "SOU", FLAG_ENGLAND),
    "ipswich": TeamIdentity("#0044A9", "#fff", "IPS", FLAG_ENGLAND),
    "sunderland": TeamIdentity("#EB172B", "#fff", "SUN", FLAG_ENGLAND),
    # National teams
    "england": TeamIdentity("#003090", "#fff", "ENG", FLAG_ENGLAND),
    "germany": TeamIdentity("#000000", "#FFCE00", "GER", _flag("DE")),
    "france": TeamIdentity("#002395", "#fff", "FRA", _flag("FR")),
    "brazil": TeamIdentity("#009C3B", "#FFDF00", "BRA", _flag("BR")),
    "argentina": TeamIdentity("#74ACDF", "#fff", "ARG", _flag("AR")),
    "spain": TeamIdentity("#AA151B", "#F1BF00", "ESP", _flag("ES")),
    "portugal": TeamIdentity("#006600", "#FF0000", "POR", _flag("PT")),
    "italy": TeamIdentity("#009246", "#fff", "ITA", _flag("IT")),
    "netherlands": TeamIdentity("#FF6600", "#fff", "NED", _flag("NL")),
    "morocco": TeamIdentity("#C1272D", "#006233", "MAR", _flag("MA")),
    "poland": TeamIdentity("#DC143C", "#fff", "POL", _flag("PL")),
    "saudi arabia": TeamIdentity("#006C35", "#fff", "KSA", _flag("SA")),
    "croatia": TeamIdentity("#FF0000", "#fff", "CRO", _flag("HR")),
    "japan": TeamIdentity("#BC002D", "#fff", "JPN", _flag("JP")),
    "senegal": TeamIdentity("#00853F", "#FDEF42", "SEN", _flag("SN")),
    "mexico": TeamIdentity("#006847", "#fff", "MEX", _flag("MX")),
    "cameroon": TeamIdentity("#007A5E", "#CE1126", "CMR", _flag("CM")),
    "australia": TeamIdentity("#00843D", "#FFD700", "AUS", _flag("AU")),
    "peru": TeamIdentity("#D91023", "#fff", "PER", _flag("PE")),
    "usa": TeamIdentity("#002868", "#BF0A30", "USA", _flag("US")),
    "colombia": TeamIdentity("#FCD116", "#003087", "COL", _flag("CO")),
    "czech republic": TeamIdentity("#D7141A", "#fff", "CZE", _flag("CZ")),
    "ecuador": TeamIdentity("#FFD100", "#034EA2", "ECU", _flag("EC")),
    "uruguay": TeamIdentity("#5EB6E4", "#fff", "URU", _flag("UY")),
    "canada": TeamIdentity("#FF0000", "#fff", "CAN", _flag("CA")),
    "belgium": TeamIdentity("#000000", "#FDDA24", "BEL", _flag("BE")),
    "ivory coast": TeamIdentity("#F77F00", "#009A44", "CIV", _flag("CI")),
    "south korea": TeamIdentity("#CD2E3A", "#003478", "KOR", _flag("KR")),
    "ghana": TeamIdentity("#006B3F", "#FCD116", "GHA", _flag("GH")),
    "switzerland": TeamIdentity("#FF0000", "#fff", "SUI", _flag("CH")),
    "nigeria": TeamIdentity("#008751", "#fff", "NGA", _flag("NG")),
    "serbia": TeamIdentity("#C6363C", "#0C4076", "SRB", _flag("RS")),
    "denmark": TeamIdentity("#C60C30", "#fff", "DEN", _flag("DK")),
    "iran": TeamIdentity("#239F40", "#fff", "IRN", _flag("IR")),
    "austria": TeamIdentity("#ED2939", "#fff", "AUT", _flag("AT")),
    "egypt": TeamIdentity("#CE1126", "#fff", "EGY", _flag("EG")),
    "turkey": TeamIdentity("#E30A17", "#fff", "TUR", _flag("TR")),
    "new zealand": TeamIdentity("#00247D", "#CC142B", "NZL", _flag("NZ")),
    "bolivia": TeamIdentity("#D52B1E", "#F4E400", "BOL", _flag("BO")),
    "qatar": TeamIdentity("#8D1B3D", "#fff", "QAT", _flag("QA")),
    "wales": TeamIdentity("#C8102E", "#fff", "WAL", FLAG_WALES),
    "algeria": TeamIdentity("#006233", "#fff", "ALG", _flag("DZ")),
    # European clubs
    "real madrid": TeamIdentity("#FEBE10", "#002B7F", "RMA", _flag("ES")),
}

_VS_SPLIT = re.compile(r"\s+vs\.?\s+", re.IGNORECASE)

# Tournament rounds in bracket order
ALL_ROUNDS: tuple[str, ...] = (
    "Group Stage",
    "Round of 32",
    "Round of 16",
    "Quarter-Final",
    "Semi-Final",
    "3rd Place",
    "Final",
)
OTHER_ROUND = "Other"


def fallback_short_code(name: str) -> str:
    """Uppercase letters of the name (first three), else first three characters uppercased."""
    capitals = "".join(ch for ch in name if "A" <= ch <= "Z")[:3]
    return capitals or name[:3].upper()


def resolve_team(name: str) -> TeamIdentity:
    lower = name.lower().strip()
    for key, identity in TEAM_MAP.items():
        if key in lower:
            return identity
    return TeamIdentity(FALLBACK_BG, FALLBACK_FG, fallback_short_code(name), FLAG_NEUTRAL)


def parse_teams(event_name: str) -> tuple[str, str]:
    """'Home vs Away' -> ('Home', 'Away'). No separator -> (name, '')."""
    parts = _VS_SPLIT.split(event_name)
    if len(parts) >= 2:
        return parts[0].strip(), " vs ".join(parts[1:]).strip()
    return event_name, ""


def is_home_fixture(event_name: str, home_team: str) -> bool:
    home, _ = parse_teams(event_name)
    return home_team.lower() in home.lower()


def round_group(round_label: str | None) -> str:
    """'Group A' -> 'Group Stage'; missing -> 'Other'; knockouts pass through."""
    if not round_label:
        return OTHER_ROUND
    if round_label.startswith("Group"):
        return "Group Stage"
    return round_label
