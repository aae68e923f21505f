import setuptools


setuptools.setup(
    name="pgx",
    version="0.1.0",
    description="Run a local PostgreSQL server and keep its credentials beside it.",
    packages=["pgx"],
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.9",
        "pg8000>=1.30",
        "retry>=0.9.2",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": ["pgx=pgx.__main__:main"],
    },
)
