from setuptools import setup, find_packages

setup(
    name="mea_ds",
    version="1.0.0",
    description="A toolbox for direction-selectivity analysis of multi-electrode array recordings.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "pandas",
        "tqdm",
        "matplotlib",
        "seaborn"
    ],
    extras_require={
        "dev": [
            "pytest",
        ],
    },
)
