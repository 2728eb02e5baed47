from setuptools import setup, find_packages

setup(
    name="steadyday",
    version="0.1.0",
    packages=find_packages(include=["steadyday", "steadyday.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0,<2.1",
        "psycopg2-binary",
        "pydantic>=2",
        "pydantic-settings",
        "prometheus-client",
        "prometheus-fastapi-instrumentator",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
