"""Setup script for the eventfeed service."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements; test tooling goes into the dev extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    content = requirements_file.read_text().strip()
    lines = content.split("\n")

    for line in lines:
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        # Separate development dependencies
        if "pytest" in line or "development" in line.lower() or "testing" in line.lower():
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="eventfeed",
    version="0.1.0",
    description="JSON feed of upcoming events from a remote ICS calendar, with location links",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="eventfeed maintainers",
    url="https://github.com/eventfeed/eventfeed",
    # Package configuration
    packages=find_packages(include=["eventfeed", "eventfeed.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Framework :: AsyncIO",
    ],
    keywords="calendar ics icalendar rrule events json feed aiohttp async",
    # Entry points
    entry_points={
        "console_scripts": [
            "eventfeed=eventfeed.__main__:main",
        ],
    },
    zip_safe=False,
    platforms=["linux", "macos"],
)
