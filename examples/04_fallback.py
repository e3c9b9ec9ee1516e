import warnings

from sensible_signatures import NumericalInstability, UnderdeterminedWarning, solve
from sensible_signatures.synthetic import make_profile, make_signatures

# more signatures than channels: the Gram matrix A^T A is singular
A = make_signatures(4, 6, seed=13)
b = make_profile(A, [10.0, 0.0, 20.0, 5.0, 0.0, 8.0])

warnings.simplefilter("ignore", UnderdeterminedWarning)

try:
    solve(A, b, method="qp")
except NumericalInstability as e:
    print("qp failed:", e)

sol = solve(A, b, method="qp", fallback_on_failure=True)
print("fell back to:", sol.backend)
for attempt in sol.diagnostics["attempts"]:
    print("  ", attempt)
print(sol.summary())
