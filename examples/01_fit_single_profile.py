import numpy as np

from sensible_signatures import solve
from sensible_signatures.synthetic import make_signatures

# four synthetic signatures over six mutation channels
A = make_signatures(6, 4, seed=0)
b = np.array([183, 779, 588, 706, 384, 127], dtype=float)

sol = solve(A, b, signature_names=["SigA", "SigB", "SigC", "SigD"], compute_floor=True)
print(sol.summary())
print("unconstrained residual floor:", round(sol.diagnostics["residual_floor"], 3))
