# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- HTTP ---
    "httpx>=0.27.0",

    # --- DATABASE & VALIDATION ---
    "duckdb>=0.10.0",
    "pydantic>=2.0.0",

    # --- CONFIG ---
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",
]

setup(
    name="statebridge",
    version="0.1.0",
    description="Persisted client state and envelope-validating API client",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require={
        # --- TESTS ---
        "test": [
            "pytest",
            "pytest-asyncio==1.3.0",
        ],
    },
    python_requires=">=3.11",
)
