from setuptools import setup, find_packages

setup(
    name="pourtrait",
    version="0.1.0",
    description="Pourtrait - a wine recommendation engine: taste profiles, pairings, and cellar insights.",
    author="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "pydantic>=2.0.0",
        "httpx>=0.24.0",
        "openai>=1.0.0",
        "tenacity>=8.2.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
)
