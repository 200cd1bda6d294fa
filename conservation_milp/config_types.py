"""
═══════════════════════════════════════════════════════════════════════════════
📋 CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Typed, validated configuration dataclasses wrapping the CONFIG
dictionary from config.py.

Usage:
    from conservation_milp.config import CONFIG
    from conservation_milp.config_types import AppConfig

    app_config = AppConfig.from_dict(CONFIG)
    report = presolve_check(problem, config=app_config.presolve)

Design Philosophy:
- Immutable configs (frozen=True) prevent accidental modification
- Every threshold is a named field, never a literal inside the checks
- Grouped by concern: Presolve, Solver, Logging

NAVIGATION GUIDE
----------------
# ═════ 1. PRESOLVE CONFIGURATION
# ═════ 2. SOLVER CONFIGURATION
# ═════ 3. LOGGING CONFIGURATION
# ═════ 4. APP CONFIG (MASTER FACADE)

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any


# ═══════════════════════════════════════════════════════════════════════════════
# 🩺 1. PRESOLVE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PresolveConfig:
    """
    Thresholds for presolve numerical-stability checks.

    Attributes:
        upper_value: Magnitudes strictly above this are flagged. Default 1e6.
        lower_value: Positive right-hand sides strictly below this (and above
            rhs_zero_floor) are flagged as rounding to zero. Also the column
            sum at or below which a planning unit counts as having no
            feature data. Default 1e-6.
        rhs_zero_floor: Right-hand sides at or below this are already zero.
            Default 1e-300.
        locked_out_threshold: Upper bound below which a planning-unit variable
            counts as locked out. Default 1e-5.
        locked_in_threshold: Lower bound above which a planning-unit variable
            counts as locked in. Default 0.9999.
        empty_feature_fraction: Share of planning units without feature data
            that triggers a warning. Default 0.5.
    """

    upper_value: float = 1e6
    lower_value: float = 1e-6
    rhs_zero_floor: float = 1e-300
    locked_out_threshold: float = 1e-5
    locked_in_threshold: float = 0.9999
    empty_feature_fraction: float = 0.5

    def __post_init__(self) -> None:
        """Validate presolve thresholds."""
        if self.upper_value <= 0:
            raise ValueError(f"upper_value must be > 0, got {self.upper_value}")
        if self.lower_value <= 0:
            raise ValueError(f"lower_value must be > 0, got {self.lower_value}")
        if self.lower_value >= self.upper_value:
            raise ValueError(
                f"lower_value ({self.lower_value}) must be < "
                f"upper_value ({self.upper_value})"
            )
        if not 0 <= self.rhs_zero_floor < self.lower_value:
            raise ValueError(
                f"rhs_zero_floor must be in [0, lower_value), got {self.rhs_zero_floor}"
            )
        if not 0 < self.locked_in_threshold <= 1:
            raise ValueError(
                f"locked_in_threshold must be in (0, 1], got {self.locked_in_threshold}"
            )
        if not 0 <= self.locked_out_threshold < 1:
            raise ValueError(
                f"locked_out_threshold must be in [0, 1), got {self.locked_out_threshold}"
            )
        if not 0 < self.empty_feature_fraction <= 1:
            raise ValueError(
                f"empty_feature_fraction must be in (0, 1], "
                f"got {self.empty_feature_fraction}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PresolveConfig":
        """Create PresolveConfig from CONFIG['presolve'] dictionary."""
        return cls(
            upper_value=d.get("upper_value", 1e6),
            lower_value=d.get("lower_value", 1e-6),
            rhs_zero_floor=d.get("rhs_zero_floor", 1e-300),
            locked_out_threshold=d.get("locked_out_threshold", 1e-5),
            locked_in_threshold=d.get("locked_in_threshold", 0.9999),
            empty_feature_fraction=d.get("empty_feature_fraction", 0.5),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🧮 2. SOLVER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

SOLVER_BACKENDS = ("auto", "highspy", "pulp")


@dataclass(frozen=True)
class SolverConfig:
    """
    Configuration for the MILP backend.

    HiGHS through highspy is preferred; PuLP (HiGHS or CBC) is the fallback.

    Attributes:
        backend: "auto", "highspy" or "pulp". Default "auto".
        time_limit: Maximum solve time in seconds. Default 60s.
        mip_gap: Relative MIP gap (0.1 = 10% suboptimality allowed).
        threads: Solver threads. Keep at 1. Default 1.
        verbose: Solver verbosity (0=silent, 1=progress).
        force: Solve even when presolve_check() fails. Default False.
    """

    backend: str = "auto"
    time_limit: int = 60
    mip_gap: float = 0.1
    threads: int = 1
    verbose: int = 0
    force: bool = False

    def __post_init__(self) -> None:
        """Validate solver configuration."""
        if self.backend not in SOLVER_BACKENDS:
            raise ValueError(
                f"backend must be one of {SOLVER_BACKENDS}, got {self.backend!r}"
            )
        if self.time_limit <= 0:
            raise ValueError(f"time_limit must be > 0, got {self.time_limit}")
        if not 0 <= self.mip_gap <= 1:
            raise ValueError(f"mip_gap must be in [0, 1], got {self.mip_gap}")
        if self.threads < 1:
            raise ValueError(f"threads must be >= 1, got {self.threads}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SolverConfig":
        """Create SolverConfig from CONFIG['solver'] dictionary."""
        return cls(
            backend=d.get("backend", "auto"),
            time_limit=d.get("time_limit_s", 60),
            mip_gap=d.get("mip_gap", 0.1),
            threads=d.get("threads", 1),
            verbose=d.get("verbose", 0),
            force=d.get("force", False),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 📝 3. LOGGING CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LoggingConfig:
    """Log folder and level."""

    log_dir: str = "logs"
    level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoggingConfig":
        """Create LoggingConfig from CONFIG['logging'] dictionary."""
        return cls(log_dir=d.get("log_dir", "logs"), level=d.get("level", "INFO"))

    @property
    def log_path(self) -> Path:
        """Get log directory as relative Path object."""
        return Path(self.log_dir)


# ═══════════════════════════════════════════════════════════════════════════════
# 🎛️ 4. APP CONFIG (MASTER FACADE)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AppConfig:
    """
    Master configuration object.

    Create it once with AppConfig.from_dict(CONFIG) and pass the relevant
    sub-configuration to compile/presolve/solve functions.
    """

    presolve: PresolveConfig = field(default_factory=PresolveConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AppConfig":
        """
        Create AppConfig from the CONFIG dictionary.

        Args:
            config_dict: The CONFIG dictionary from config.py.

        Returns:
            AppConfig instance with all settings populated.
        """
        return cls(
            presolve=PresolveConfig.from_dict(config_dict.get("presolve", {})),
            solver=SolverConfig.from_dict(config_dict.get("solver", {})),
            logging=LoggingConfig.from_dict(config_dict.get("logging", {})),
        )
