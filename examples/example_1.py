import numpy as np
from scipy.stats import norm

import lazygp as lgp

# Create example data in 1D
np.random.seed(1234)
N = 31
D = 1
X = -5 + np.random.rand(N, 1) * 10
y = np.sin(X[:, 0]) + 0.1 * norm.ppf(np.random.random_sample(N))

# Define the GP model: squared exponential plus observation noise.
gp = lgp.GaussianProcess(
    D, "CovSum(CovSEiso, CovNoise)", options={"display": "full"}
)

# Log-lengthscale, log-outputscale and log-noise.
gp.set_hyperparameters([0.0, 0.0, np.log(0.1)])
gp.add_patterns(X, y)

print(gp)
print("Log marginal likelihood:", gp.log_likelihood())
print("Gradient:", gp.log_likelihood_gradient())

# The first prediction factorizes the kernel matrix, the others reuse it.
for x_star in [-2.0, 0.0, 2.0]:
    fmu, fs2 = gp.predict([x_star], compute_variance=True)
    print(f"x = {x_star:5.2f}: mean {fmu:8.4f}, variance {fs2:8.4f}")

# Save the model and load it again.
gp.write("example_1_model.txt")
gp_loaded = lgp.GaussianProcess.read("example_1_model.txt")
print("Reloaded prediction at 0:", gp_loaded.f([0.0]))

# Plot the GP
gp.plot()
