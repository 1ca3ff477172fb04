"""Engine-level configuration: every tunable constant in one place.

This module is the **registry** for constants that a deployment may want to
recalibrate: ELO sensitivity, the empirical draw factor, value-bet
thresholds, the AAA bond yield used by Graham's formula and the Monte Carlo
defaults.  Nowhere else in the codebase should these be hard-coded; the
service modules take them as keyword defaults mirrored from
:meth:`EngineConfig.default`.

Architecture
------------
:class:`EngineConfig` is a frozen dataclass.  Named constructors return
pre-populated instances; :meth:`EngineConfig.from_env` layers ``QE_*``
environment variables (optionally loaded from a ``.env`` file) over the
defaults.  :class:`~quant_engine.engine.AnalyticsEngine` accepts a config at
construction time and threads it into every service call.

Typical usage::

    from quant_engine.core.engine_config import EngineConfig

    cfg = EngineConfig.from_env()
    engine = AnalyticsEngine(config=cfg)

    # Override a single constant for an A/B run:
    from dataclasses import replace
    custom_cfg = replace(cfg, elo_k_factor=20.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Final

from dotenv import load_dotenv

#: Prefix for every environment override read by :meth:`EngineConfig.from_env`.
ENV_PREFIX: Final[str] = "QE_"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration bundle for the analytics engine.

    All fields carry the defaults used by the dashboard formulas,
    so an unconfigured engine behaves exactly like the reference
    calculations.

    Attributes:
        --- ELO ---
        base_elo: Rating assigned to teams absent from a ratings snapshot.
        elo_k_factor: Update sensitivity per match before the goal-margin
            multiplier is applied.
        elo_home_advantage: Rating points added to the home side before the
            expected score is computed.  ``0.0`` models a neutral venue.
        elo_draw_factor: Empirical draw share used by
            :func:`~quant_engine.services.elo.match_probabilities`.

        --- Poisson ---
        league_avg_goals: Fallback league scoring rate (both teams
            combined) when the caller supplies none.
        max_goals: Upper bound of the score matrix on each axis.
        scoreline_max_goals: Scorelines above this on either side are not
            reported among the most likely results.
        top_scorelines: Number of most likely scorelines returned.

        --- Value bets ---
        value_threshold_pct: Minimum probability gap (percentage points)
            for a selection to count as a value bet.
        strong_value_pct: Gap above which the recommendation upgrades to
            ``"strong_bet"``.

        --- Valuation ---
        aaa_yield_pct: Current AAA corporate bond yield for the modified
            Graham formula.
        reverse_dcf_tolerance: Relative tolerance of the reverse-DCF
            bisection (0.01 = within 1% of the target value).
        reverse_dcf_max_iter: Iteration cap for the reverse-DCF bisection.

        --- Monte Carlo ---
        mc_simulations: Default number of trials per simulation.
        mc_initial_value: Default starting portfolio value.
        mc_initial_bankroll: Default starting betting bankroll.
        mc_num_bets: Default bets per betting trial.
        mc_stake_pct: Default flat stake as a percentage of bankroll.
    """

    # ELO
    base_elo: float = 1500.0
    elo_k_factor: float = 32.0
    elo_home_advantage: float = 100.0
    elo_draw_factor: float = 0.26

    # Poisson
    league_avg_goals: float = 2.75
    max_goals: int = 10
    scoreline_max_goals: int = 5
    top_scorelines: int = 10

    # Value bets
    value_threshold_pct: float = 5.0
    strong_value_pct: float = 10.0

    # Valuation
    aaa_yield_pct: float = 4.4
    reverse_dcf_tolerance: float = 0.01
    reverse_dcf_max_iter: int = 100

    # Monte Carlo
    mc_simulations: int = 10_000
    mc_initial_value: float = 100_000.0
    mc_initial_bankroll: float = 1_000.0
    mc_num_bets: int = 100
    mc_stake_pct: float = 2.0

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def default(cls) -> EngineConfig:
        """Return the reference configuration used by the dashboard."""
        return cls()

    @classmethod
    def football(cls) -> EngineConfig:
        """Return the association-football configuration.

        The reference constants were calibrated on European football
        (2.75 goals per game, 0.26 draw share), so this is identical to
        :meth:`default`; it exists so call sites can state their sport.
        """
        return cls()

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> EngineConfig:
        """Build a config from ``QE_*`` environment variables.

        Each field maps to ``QE_<FIELD_NAME_UPPER>`` (e.g. ``QE_ELO_K_FACTOR``).
        Unset variables keep their defaults.

        Args:
            dotenv: When True, load a ``.env`` file from the working
                directory first (existing environment variables win).

        Raises:
            ValueError: If a variable is set but cannot be parsed as the
                field's type.
        """
        if dotenv:
            load_dotenv()

        overrides: dict[str, float | int] = {}
        for f in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            caster = int if f.type in ("int", int) else float
            try:
                overrides[f.name] = caster(raw)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_PREFIX}{f.name.upper()}={raw!r} is not a valid {caster.__name__}."
                ) from exc
        return replace(cls(), **overrides)

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    def neutral_site(self) -> EngineConfig:
        """Return a copy with ELO home advantage zeroed out.

        Use for cup finals or tournament games at neutral venues.

        Examples::

            cfg = EngineConfig.default().neutral_site()
            assert cfg.elo_home_advantage == 0.0
        """
        return replace(self, elo_home_advantage=0.0)

    def __repr__(self) -> str:
        return (
            f"EngineConfig(k={self.elo_k_factor}, "
            f"home_adv={self.elo_home_advantage}, "
            f"value_threshold={self.value_threshold_pct}, "
            f"mc_sims={self.mc_simulations})"
        )
