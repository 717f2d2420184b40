"""
KAN Playground Core - B-spline Kolmogorov-Arnold Networks for interactive training

Based on paper: https://arxiv.org/abs/2404.19756
"""

from setuptools import setup, find_packages

setup(
    name="kan-playground-core",
    version="0.1.0",
    author="KAN Playground",
    description="Single-example B-spline Kolmogorov-Arnold Network engine for interactive training",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "experiments"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "torch>=1.10.0",
    ],
    extras_require={
        "symbolic": ["sympy>=1.10.0"],
        "dev": ["pytest", "black", "isort"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    keywords="machine-learning, neural-networks, kolmogorov-arnold, splines, b-splines",
)
