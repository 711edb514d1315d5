from setuptools import find_packages, setup

setup(
    name="lazygp",
    version="0.1.0",
    description="Gaussian process regression with a lazily updated Cholesky factor",
    packages=find_packages(),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy>=1.9",
        "matplotlib",
    ],
    extras_require={
        "test": [
            "pytest",
            "numdifftools",
        ],
    },
)
