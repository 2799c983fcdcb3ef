"""
setup.py for the keyqp Python package.

The package sources live under python/:
    pip install -e .
"""

from setuptools import find_packages, setup

setup(
    name="keyqp",
    version="0.1.0",
    description="Active-set QP solver over sparse keyed factor graphs",
    package_dir={"": "python"},
    packages=find_packages(where="python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
)
