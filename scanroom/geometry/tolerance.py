from __future__ import annotations

# Positional epsilon for near-zero distance/length checks.
EPS_POS = 1e-12

# Angular epsilon (dimensionless tolerance used for parallel/unit checks).
EPS_ANG = 1e-9

# Reciprocal condition number below which a 3x3 plane system counts as singular.
EPS_RCOND = 1e-7

# Plane-distance epsilon for "point lies on plane" checks.
EPS_ON_PLANE = 1e-4

# Rank tolerance for least-squares offset systems.
EPS_RANK = 1e-10
