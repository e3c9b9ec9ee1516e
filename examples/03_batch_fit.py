import numpy as np

from sensible_signatures import solve_many
from sensible_signatures.synthetic import make_profile, make_signatures

A = make_signatures(96, 5, seed=1)

rng = np.random.default_rng(1)
X = rng.gamma(2.0, 100.0, size=(20, 5))
B = np.stack([make_profile(A, x, noise="poisson", seed=i) for i, x in enumerate(X)])

batch = solve_many(A, B, workers=4)
print("exposures shape:", batch.exposures.shape)
print("all optimal:", bool(batch.optimal.all()))
print("median relative residual:", np.median([s.relative_residual for s in batch]))
