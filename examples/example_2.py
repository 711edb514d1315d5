import numpy as np

import lazygp as lgp

# Create toy training data for the GP
np.random.seed(1235)
N = 20
D = 2
X = np.random.uniform(low=-3, high=3, size=(N, D))
y = np.sin(np.sum(X, 1)) + np.random.normal(scale=0.1, size=N)

# Compound covariance functions nest to any depth, the first child owns
# the leading hyperparameters.
factory = lgp.CovFactory()
print("Available covariance functions:", ", ".join(factory.list()))
covf = factory.create(D, "CovSum(CovProd(CovSEard, CovLinearone), CovNoise)")
print(covf, "with", covf.get_param_dim(), "hyperparameters")

gp = lgp.GaussianProcess(D, covf)
gp.add_patterns(X, y)

# Compare a few noise levels by their marginal likelihood.
hyp = np.zeros(gp.get_param_dim())
best = None
for log_sn in np.linspace(-5, 0, 11):
    hyp[-1] = log_sn
    gp.set_hyperparameters(hyp)
    lZ = gp.log_likelihood()
    if best is None or lZ > best[0]:
        best = (lZ, log_sn)

hyp[-1] = best[1]
gp.set_hyperparameters(hyp)
print(f"Best log-noise {best[1]:.2f} with log marginal likelihood {best[0]:.3f}")

x_star = np.array([0.5, 0.5])
fmu, fs2 = gp.predict(x_star, compute_variance=True)
print(f"Prediction at {x_star}: mean {fmu:.4f} (true {np.sin(1.0):.4f}), "
      f"variance {fs2:.4f}")
