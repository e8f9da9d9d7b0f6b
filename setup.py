"""Setup script for eventcal, the recurrence and iCalendar engine."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        # Separate testing dependencies
        if "pytest" in line or "icalendar" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="eventcal",
    version="1.0.0",
    description="Calendar recurrence expansion and RFC 5545 feed generation for community events",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Hypnose Stammtisch Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
        "test": dev_requirements,
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
    ],
    keywords="calendar ics icalendar rrule recurrence events",
    package_data={
        "eventcal": ["py.typed"],
    },
    zip_safe=False,
)
