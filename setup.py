from setuptools import setup, find_packages

setup(
    name="ride_tracker",
    version="1.0.0",
    packages=find_packages(include=["ride_tracker", "ride_tracker.*"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ride-tracker=ride_tracker.cli:main",
        ],
    },
    python_requires=">=3.8",
)
