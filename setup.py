"""setuptools setup for TimeBank.

Install for development:
    pip install -e ".[test]"
    python -m timebank --help
"""

from setuptools import setup, find_packages

setup(
    name="TimeBank",
    version="0.1.0",
    packages=find_packages(include=["timebank", "timebank.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6>=6.5",
        "SQLAlchemy>=2.0",
        "click>=8.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["timebank=timebank.__main__:main"],
    },
)
