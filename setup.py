"""
Setup.py for backwards compatibility and broader distribution support.
"""
from setuptools import setup, find_packages

setup(
    name="vote-gate",
    use_scm_version={"fallback_version": "0.1.0"},
    setup_requires=["setuptools-scm"],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "vote-gate=vote_gate.cli:app",
        ],
    },
    zip_safe=False,
    # All other metadata is in pyproject.toml
)
