"""Rig-name and location-key canonicalisation.

Schedule exports spell the same rig several ways ("GOM.Atlas", "ATLAS",
"Deepwater Atlas") and the same field several ways ("GOM.Mad Dog",
"GOM.MadDog").  :class:`RigNameResolver` and :class:`LocationAliasResolver`
map each raw identifier to one canonical identifier so every stage after
ingestion sees a single name per rig and a single key per location.

Matching is exact first, then case-insensitive exact.  There is no
substring or fuzzy matching: an unrecognised name passes through unchanged
and is reported to the caller as unmapped.

Typical usage::

    resolver = RigNameResolver()
    resolver.resolve("GOM.Black Lion")   # -> "Ocean BlackLion"
    resolver.is_known("Some New Rig")    # -> False

    LocationAliasResolver().resolve("GOM.Thunder Horse")  # -> "GOM.ThunderHorse"
"""

from __future__ import annotations

from typing import Mapping

from loguru import logger


CANONICAL_RIGS: tuple[str, ...] = (
    "Deepwater Invictus",
    "Deepwater Atlas",
    "Ocean Blackhornet",
    "Ocean BlackLion",
    "Stena IceMAX",
    "Island Venture",
    "Mad Dog Drilling",
    "Thunderhorse Drilling",
    "Q5000",
    "TBD #02",
    "TBD #07",
)

# canonical name -> raw synonyms seen in schedule exports
DEFAULT_RIG_ALIASES: dict[str, tuple[str, ...]] = {
    "Deepwater Invictus": ("Transocean.Invictus", "Transocean Invictus", "INVICTUS"),
    "Deepwater Atlas": ("GOM.Atlas", "ATLAS"),
    "Ocean Blackhornet": ("GOM.Black Hornet", "Black Hornet"),
    "Ocean BlackLion": ("GOM.BlackLion", "GOM.Black Lion", "Black Lion"),
    "Stena IceMAX": ("GOM.IceMax", "GOM.Ice Max", "STENA ICEMAX"),
    "Island Venture": ("GOM.LWI.ISLVEN", "GOM.LWI ISLVEN", "Intervention Vessel TBD"),
    "Mad Dog Drilling": ("GOM.Mad Dog SPAR", "Mad Dog Spar"),
    "Thunderhorse Drilling": ("GOM.PDQ", "TH PDQ"),
    "Q5000": ("GOM.Q5000",),
    "TBD #02": ("GOM.TBD#02", "TBD #2"),
    "TBD #07": ("GOM.TBD#07", "TBD #7"),
}

# canonical location key -> raw asset codes seen in schedule exports
DEFAULT_LOCATION_ALIASES: dict[str, tuple[str, ...]] = {
    "GOM.Atlantis": ("Atlantis",),
    "GOM.Nakika": ("Na Kika", "GOM.Na Kika"),
    "GOM.Region": ("GOM", "Gulf of Mexico"),
    "GOM.GOMX": ("GOMX",),
    "GOM.ThunderHorse": ("GOM.Thunder Horse", "Thunder Horse"),
    "GOM.Argos": ("Argos",),
    "GOM.MadDog": ("GOM.Mad Dog", "Mad Dog"),
    "GOM.Paleogene": ("Paleogene",),
    "GOM.Kaskida": ("Kaskida",),
    "GOM.Tiber": ("Tiber",),
}


class AliasResolver:
    """Resolve raw identifiers to canonical identifiers.

    Args:
        aliases: Mapping of canonical identifier to its raw synonyms.
            Every canonical identifier also resolves to itself.
        kind: Noun used in log and error messages.

    Raises:
        ValueError: If one raw identifier is claimed by two canonical ones.
    """

    def __init__(self, aliases: Mapping[str, tuple[str, ...] | list[str]], kind: str) -> None:
        self.kind = kind
        self._exact: dict[str, str] = {}
        self._folded: dict[str, str] = {}
        for canonical, synonyms in aliases.items():
            for raw in (canonical, *synonyms):
                self._register(raw, canonical)
        logger.debug(
            "{} built: {} canonical {}s, {} raw names",
            type(self).__name__,
            len(aliases),
            kind,
            len(self._exact),
        )

    def _register(self, raw: str, canonical: str) -> None:
        key = raw.strip()
        existing = self._exact.get(key)
        if existing is not None and existing != canonical:
            raise ValueError(
                f"Raw {self.kind} '{raw}' maps to both '{existing}' and '{canonical}'"
            )
        self._exact[key] = canonical
        self._folded.setdefault(key.casefold(), canonical)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, raw_name: str) -> str | None:
        """Return the canonical identifier for *raw_name*, or ``None`` if unmapped."""
        key = (raw_name or "").strip()
        if key in self._exact:
            return self._exact[key]
        return self._folded.get(key.casefold())

    def resolve(self, raw_name: str) -> str:
        """Return the canonical identifier, or the stripped raw name if unmapped."""
        canonical = self.lookup(raw_name)
        return canonical if canonical is not None else (raw_name or "").strip()

    def is_known(self, raw_name: str) -> bool:
        return self.lookup(raw_name) is not None

    @property
    def canonical_names(self) -> list[str]:
        """Sorted canonical identifiers known to this resolver."""
        return sorted(set(self._exact.values()))


class RigNameResolver(AliasResolver):
    """Rig-name resolver; defaults to :data:`DEFAULT_RIG_ALIASES`."""

    def __init__(self, aliases: Mapping[str, tuple[str, ...] | list[str]] | None = None) -> None:
        super().__init__(DEFAULT_RIG_ALIASES if aliases is None else aliases, "rig name")


class LocationAliasResolver(AliasResolver):
    """Location-key resolver; defaults to :data:`DEFAULT_LOCATION_ALIASES`."""

    def __init__(self, aliases: Mapping[str, tuple[str, ...] | list[str]] | None = None) -> None:
        super().__init__(DEFAULT_LOCATION_ALIASES if aliases is None else aliases, "location key")
