from __future__ import annotations

import random
from types import MappingProxyType
from typing import Mapping

from cinevibe_core.errors import UnknownVibe

from .types import VibeProfile


def _vibe(id_, name, primary, secondary, anti) -> VibeProfile:
    return VibeProfile(
        id=id_,
        display_name=name,
        primary_genres=frozenset(primary),
        secondary_genres=frozenset(secondary),
        anti_genres=frozenset(anti),
    )


# TMDB movie genre ids
VIBES: Mapping[str, VibeProfile] = MappingProxyType(
    {
        "chill": _vibe(
            "chill", "Chill & Relax",
            primary=[35, 10751],  # Comedy, Family
            secondary=[10749, 16],  # Romance, Animation
            anti=[27, 53, 80],  # Horror, Thriller, Crime
        ),
        "adrenaline": _vibe(
            "adrenaline", "Adrenaline Rush",
            primary=[28, 53],  # Action, Thriller
            secondary=[80, 878],  # Crime, Sci-Fi
            anti=[10749, 10751],  # Romance, Family
        ),
        "brain": _vibe(
            "brain", "Mind Bender",
            primary=[878, 9648],  # Sci-Fi, Mystery
            secondary=[53, 18],  # Thriller, Drama
            anti=[35, 10751],  # Comedy, Family
        ),
        "feelgood": _vibe(
            "feelgood", "Feel Good",
            primary=[10749, 35],  # Romance, Comedy
            secondary=[10751, 18],  # Family, Drama
            anti=[27, 53, 80],  # Horror, Thriller, Crime
        ),
        "dark": _vibe(
            "dark", "Dark & Gritty",
            primary=[80, 27],  # Crime, Horror
            secondary=[53, 9648],  # Thriller, Mystery
            anti=[35, 10751, 16],  # Comedy, Family, Animation
        ),
        "epic": _vibe(
            "epic", "Epic Adventure",
            primary=[12, 14],  # Adventure, Fantasy
            secondary=[878, 28],  # Sci-Fi, Action
            anti=[10749],  # Romance
        ),
    }
)


def get_vibe(vibe_id: str) -> VibeProfile:
    try:
        return VIBES[vibe_id]
    except KeyError:
        raise UnknownVibe(f"Invalid vibe_id: {vibe_id!r}")


def random_vibe_id(rng: random.Random) -> str:
    return rng.choice(sorted(VIBES))
