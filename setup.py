from setuptools import setup, find_packages

setup(
    name="arcane-odds",
    version="0.1.0",
    description="Exact damage distributions for tabletop RPG spell collections",
    author="Samuel",
    python_requires=">=3.11",
    packages=find_packages(include=["src", "src.*"]),
    install_requires=[
        "flask>=3.0.0",
        "flask-socketio>=5.3.0",
        "jsonschema>=4.20.0",
        "colorama>=0.4.6",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "pylint>=3.0.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "arcane-odds=src.cli.commands:main",
        ]
    },
)
