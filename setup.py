"""
Setup script for tiny-fbf.
"""

from setuptools import setup, find_packages

setup(
    name="tiny-fbf",
    version="0.1.0",
    description="Forgetful Bloom filter: time-decaying approximate set membership",
    packages=find_packages(include=["tiny_fbf", "tiny_fbf.*"]),
    package_data={"tiny_fbf": ["py.typed"]},
    python_requires=">=3.8",
)
