from setuptools import setup, find_packages
from pathlib import Path

here = Path(__file__).parent
long_description = (here / "README.md").read_text(encoding="utf-8")

setup(
    name="stig-inspector",
    version="0.1.0",
    description="Declarative RHEL 8 STIG compliance checks with a small rule-evaluation engine",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=find_packages(exclude=["tests*", "examples*", "docs*"]),
    include_package_data=True,
    package_data={
        "stig_inspector": ["config/*.yaml", "rules/rule_configs/*.yaml"],
    },
    python_requires=">=3.10",

    install_requires=[
        "pyyaml>=6.0",
        "jsonschema>=4.0.0",
        "pydantic>=2.6.0",
        "pandas>=2.2.0",
    ],

    extras_require={
        "test": ["pytest>=7.0"],
    },

    entry_points={
        "console_scripts": [
            "stig-inspector=stig_inspector.main:main"
        ]
    },

    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Intended Audience :: System Administrators",
        "Topic :: Security",
        "Topic :: System :: Systems Administration",
    ],

    keywords="stig rhel compliance audit hardening security",
    license="MIT",
)
