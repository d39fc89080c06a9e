"""
Bagged OutlierTrees Setup Script
================================
Robust Explainable Outlier Detection with Bagged OutlierTrees
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="bagged-outliertrees",
    version="0.1.0",
    author="Bagged OutlierTrees Team",
    author_email="bagged-outliertrees@example.com",
    description="Robust explainable outlier detection by bagging OutlierTree models",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "scikit-learn>=1.3.0",
        "joblib>=1.4.0",
        "tqdm>=4.65.0",
        "pyyaml>=6.0",
        "outliertree>=1.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },
    keywords="outlier-detection anomaly-detection explainability bagging ensemble",
)
