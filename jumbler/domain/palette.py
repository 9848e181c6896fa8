"""Fixed team names and colors, indexed by team number modulo the palette size."""

from typing import List

from jumbler.models.session_models import TeamModel

TEAM_NAMES = [
    "Cosmic Voyagers",
    "Neon Ninjas",
    "Quantum Questers",
    "Cyber Phoenixes",
    "Electric Eagles",
    "Mystic Mavericks",
    "Stellar Spirits",
    "Digital Dragons",
    "Hyper Hawks",
    "Aurora Avengers",
]

TEAM_COLORS = [
    "#00F0FF",  # electric blue
    "#FF006E",  # neon pink
    "#FFBE0B",  # cyber yellow
    "#00FF85",  # toxic green
    "#B537F2",  # vivid purple
    "#FF4365",  # hot red
    "#06FFA5",  # mint
    "#FFA400",  # amber
    "#5E17EB",  # deep violet
    "#FF00BD",  # magenta
]

PALETTE_SIZE = len(TEAM_NAMES)


def make_empty_teams(team_count: int) -> List[TeamModel]:
    """Allocate ``team_count`` teams without members.

    Teams beyond the palette size reuse names and colors cyclically.
    """
    return [
        TeamModel(
            index=i,
            name=TEAM_NAMES[i % PALETTE_SIZE],
            color=TEAM_COLORS[i % PALETTE_SIZE],
        )
        for i in range(team_count)
    ]
