"""
MDE Engine - Setup
"""

from setuptools import setup, find_packages

setup(
    name="mde_engine",
    version="1.0.0",
    description="Verbal descriptions of the graphs of equations and data",
    packages=find_packages(include=["mde_engine", "mde_engine.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["mde-engine=mde_engine.runner:main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Programming Language :: Python :: 3",
    ],
)
