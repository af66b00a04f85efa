from __future__ import annotations

from setuptools import find_packages, setup  # type: ignore


setup(
    name="carbongrade",
    version="0.1.0",
    description="Grading and grade-weighted marketplace pricing engine for Carbon NFTs",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "fastapi>=0.100",
        "uvicorn>=0.22",
        "httpx>=0.24",
    ],
    extras_require={
        "test": [
            "pytest>=7",
        ],
    },
    entry_points={
        "console_scripts": [
            "carbongrade=carbongrade.__main__:main",
        ],
    },
)
