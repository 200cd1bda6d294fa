#!/usr/bin/env python3
"""
Conservation MILP - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for problem compilation, presolve
checks and MILP solving. Single source of truth for numeric thresholds and
solver parameters.

Configuration Sections (ordered by importance for tuning):
1. presolve: Numerical-stability thresholds used by presolve_check()
2. solver: MILP backend selection and parameters
3. logging: Log folder and level

Typed access goes through config_types.AppConfig.from_dict(CONFIG).

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "CM_PRESOLVE_UPPER")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("CM_MIP_GAP", 0.1, float)
        0.1  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# These settings can be overridden via environment variables:
#
# CM_PRESOLVE_UPPER  - float, upper magnitude threshold (default: 1e6)
# CM_PRESOLVE_LOWER  - float, lower magnitude threshold (default: 1e-6)
# CM_TIME_LIMIT      - int, solver time limit in seconds (default: 60)
# CM_MIP_GAP         - float, relative MIP gap (default: 0.1)
# CM_SOLVER_BACKEND  - "auto", "highspy" or "pulp" (default: "auto")
# CM_FORCE_SOLVE     - "true" or "false", solve even if presolve fails
# CM_LOG_DIR         - log folder (default: "logs")
#
# Example usage:
#   export CM_PRESOLVE_UPPER=1e9
#   export CM_SOLVER_BACKEND=pulp
#   python -m conservation_milp.main
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 🩺 PRESOLVE CHECK THRESHOLDS
    # ═══════════════════════════════════════════════════════════════════════
    # Values above upper_value in the objective, right-hand sides or the
    # constraint matrix are flagged as numerically risky.
    #
    # NOTE: solver vendors quote 1e9 (range) and 1e10 (absolute) as the point
    # where instability becomes likely. The advisory check uses 1e6 so that
    # problems are flagged well before that point.
    # ENV OVERRIDE: CM_PRESOLVE_UPPER (float, default: 1e6)
    "presolve": {
        "upper_value": _env_or_default("CM_PRESOLVE_UPPER", 1e6, float),
        # Positive right-hand sides below this are treated as "rounds to zero"
        # ENV OVERRIDE: CM_PRESOLVE_LOWER (float, default: 1e-6)
        "lower_value": _env_or_default("CM_PRESOLVE_LOWER", 1e-6, float),
        # Right-hand sides at or below this are already zero
        "rhs_zero_floor": 1e-300,
        # Planning-unit upper bound below this counts as locked out
        "locked_out_threshold": 1e-5,
        # Planning-unit lower bound above this counts as locked in
        "locked_in_threshold": 0.9999,
        # Share of planning units with no feature data that triggers a warning
        "empty_feature_fraction": 0.5,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🧮 MILP SOLVER CONFIGURATION
    # ═══════════════════════════════════════════════════════════════════════
    "solver": {
        # "auto": highspy if installed, PuLP otherwise
        # ENV OVERRIDE: CM_SOLVER_BACKEND
        "backend": _env_or_default("CM_SOLVER_BACKEND", "auto"),
        # Maximum solve time in seconds
        "time_limit_s": _env_or_default("CM_TIME_LIMIT", 60, int),
        # Relative MIP gap (0.1 = solutions within 10% of optimality)
        "mip_gap": _env_or_default("CM_MIP_GAP", 0.1, float),
        # Keep at 1; run independent problems in parallel instead
        "threads": 1,
        # 0 = silent, 1 = solver progress output
        "verbose": 0,
        # Solve even when presolve_check() reports issues
        # ENV OVERRIDE: CM_FORCE_SOLVE
        "force": _env_bool("CM_FORCE_SOLVE", False),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📝 LOGGING
    # ═══════════════════════════════════════════════════════════════════════
    "logging": {
        "log_dir": _env_or_default("CM_LOG_DIR", "logs"),
        "level": "INFO",
    },
}
