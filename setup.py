from setuptools import setup, find_packages

setup(
    name="flowmap",
    version="0.1.0",
    packages=find_packages(include=["flowmap", "flowmap.*"]),
    install_requires=[
        "pydantic>=2.0",
        "networkx>=3.0",
        "loguru>=0.7",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "flowmap=flowmap.cli:main",
        ],
    },
    python_requires=">=3.10",
)
