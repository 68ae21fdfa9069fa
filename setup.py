from setuptools import setup, find_packages

setup(
    name="shardreader",
    version="0.1.0",
    description="Pull-based reader over partitioned streams with watermarks and checkpoints",
    author="adamfilli",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    install_requires=[],
    extras_require={
        "test": ["pytest"],
        "examples": ["matplotlib"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
