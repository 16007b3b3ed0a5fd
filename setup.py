"""setup.py for mkzip.

Pure-Python package; the only hard runtime dependency is numpy. The zstd
backend is optional and pulled in with the ``zstd`` extra.
"""

from setuptools import find_packages, setup

setup(
    name="mkzip",
    version="1.0.0",
    description="Lossless compression of numeric and character arrays",
    packages=find_packages(include=["mkzip", "mkzip.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
    ],
    extras_require={
        "zstd": [
            "zstandard>=0.18",
        ],
        "test": [
            "pytest>=7.0.0",
            "zstandard>=0.18",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: System :: Archiving :: Compression",
        "Topic :: Scientific/Engineering",
    ],
)
