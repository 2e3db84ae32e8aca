"""Setup configuration for trello_reviewer"""

from setuptools import setup, find_namespace_packages

setup(
    name="trello-reviewer",
    version="0.1.0",
    description=(
        "Webhook server that tracks GitHub pull request reviews on a Trello "
        "board by counting +1/-1 votes."
    ),
    author="Trello Reviewer Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "trello-reviewer=trello_reviewer.main:main",
        ],
    },
)
