"""Setup script for pg_ical, the iCalendar to relational rows parser."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test-only dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().splitlines():
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line or "icalendar" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="pg-ical",
    version="0.1.0",
    description="Parse iCalendar (RFC 5545) text into typed, relational rows",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="pg_ical developers",
    packages=find_packages(include=["pg_ical", "pg_ical.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": dev_requirements,
        "dev": dev_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Topic :: Database",
    ],
    keywords="icalendar ics rfc5545 parser postgresql rows",
    entry_points={
        "console_scripts": [
            "pg-ical=pg_ical.__main__:main",
        ],
    },
    zip_safe=False,
)
