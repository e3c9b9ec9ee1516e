import numpy as np

from sensible_signatures import AVAILABLE_BACKENDS, solve
from sensible_signatures.synthetic import make_profile, make_signatures

A = make_signatures(12, 4, seed=3)
x_true = np.array([100.0, 0.0, 250.0, 40.0])
b = make_profile(A, x_true, noise="poisson", seed=3)

print("true     ", x_true)
for method in AVAILABLE_BACKENDS:
    sol = solve(A, b, method=method)
    print(f"{method:<9s}", np.round(sol.exposures, 2), f"|r|={sol.residual_norm:.3f}")
