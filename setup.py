from pathlib import Path
from setuptools import setup, find_packages


def read_readme() -> str:
    readme_path = Path(__file__).resolve().parent / "README.md"
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""


setup(
    name="bl4sav",
    version="1.0.0",
    packages=find_packages(include=["bl4sav", "bl4sav.*"]),
    install_requires=[
        "cryptography>=41.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "bl4sav=bl4sav.main:main",
        ],
    },
    python_requires=">=3.10",
    description="Borderlands 4 save container and item serial codec",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
)
