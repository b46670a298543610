"""
Numerical tolerances and search defaults.

Values follow the conventions of the inversion method: angles in radians,
stress ratio R = (σ2 - σ3) / (σ1 - σ3) in [0, 1].
"""

import numpy as np


# Tolerance for "is zero" and orthogonality tests on unit vectors
EPS = 1e-7

# ──────────────────────────────────────────────
# Monte Carlo defaults
# ──────────────────────────────────────────────

DEFAULT_ROT_ANGLE_HALF_INTERVAL = np.pi
DEFAULT_NB_RANDOM_TRIALS = 1000
DEFAULT_STRESS_RATIO = 0.5
DEFAULT_STRESS_RATIO_HALF_INTERVAL = 0.25

# Trials between two deadline / cancellation checks
DEFAULT_CHECK_INTERVAL = 100

# What a search does when a datum reports a non-monotonic misfit:
#   "skip"  -> discard that trial and keep searching
#   "raise" -> abort the whole run
INVARIANT_POLICIES = ("skip", "raise")
DEFAULT_INVARIANT_POLICY = "skip"

# ──────────────────────────────────────────────
# Angular intervals for <σ1, n> (radians)
# ──────────────────────────────────────────────

# Neoformed planes and dilatant shear bands: left half of the Mohr circle
NEOFORMED_S1N_INTERVAL = (np.pi / 4, np.pi / 2)

# Compactional shear bands: σ1 close to the band normal
COMPACTIONAL_S1N_INTERVAL = (0.0, np.pi / 4)
