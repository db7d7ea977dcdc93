# setup.py
from setuptools import setup, find_packages

setup(
    name="domain_scout",
    version="0.1.0",
    description="Асинхронный движок обнаружения URL домена DomainScout",
    packages=find_packages(include=["domain_scout", "domain_scout.*"]),
    package_data={"domain_scout": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=5.0",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": ["pytest>=8.0", "pytest-asyncio>=0.23"],
    },
    entry_points={
        "console_scripts": ["domain-scout=domain_scout.cli:cli"],
    },
    python_requires=">=3.11",
)
