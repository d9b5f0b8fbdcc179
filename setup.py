"""Setup configuration for repohealth"""

from setuptools import setup, find_packages

setup(
    name="repo-health-analytics",
    version="0.1.0",
    description=(
        "CLI tool for GitHub repository health metrics: issue lifecycle, "
        "reviewer insights, contributor friction and backlog health."
    ),
    author="Repo Health Analytics Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "python-dateutil>=2.8.2",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
            "types-requests",
            "types-python-dateutil",
        ],
    },
    entry_points={
        "console_scripts": [
            "repo-health-analytics=repohealth.main:main",
        ],
    },
)
