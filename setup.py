"""
Setup for the Rework Station backend package.
This makes 'rework_backend' an installable Python package.
"""
from setuptools import setup, find_packages

setup(
    name="rework-station-backend",
    version="1.0.0",
    packages=find_packages(include=["rework_backend", "rework_backend.*"]),
    install_requires=[
        line.strip()
        for line in open('rework_backend/requirements.txt')
        if line.strip() and not line.startswith('#')
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    package_data={"rework_backend": ["requirements.txt"]},
    python_requires=">=3.9",
)
