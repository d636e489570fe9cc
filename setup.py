from setuptools import setup, find_packages

setup(
    name="induction_planner",
    version="0.1.0",
    packages=find_packages(include=["induction_planner", "induction_planner.*"]),
    package_data={"induction_planner.services": ["*.yaml"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "sqlalchemy[asyncio]>=2",
        "asyncpg",
        "httpx",
        "python-dotenv",
        "pyyaml"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "aiosqlite",
        ],
    },
)
