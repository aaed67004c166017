# setup.py - Package build
from setuptools import setup, find_packages

setup(
    name="bilevel_aggregator",
    version="0.1.0",
    description="Set and map containers indexed by (group key, aggregation key)",
    packages=find_packages(include=["bilevel_aggregator", "bilevel_aggregator.*"]),
    python_requires=">=3.8",
    install_requires=["numpy"],
    extras_require={"test": ["pytest"]},
)
