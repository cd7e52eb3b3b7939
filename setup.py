import re
from pathlib import Path

from setuptools import find_packages, setup


VERSION_REGEX = r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]'

init = Path("src/tinymail/__init__.py")
readme = Path(__file__).with_name("README.rst")
version_match = re.search(VERSION_REGEX, init.read_text("utf-8"), re.MULTILINE)

if version_match:
    version = version_match.group(1)
else:
    raise RuntimeError("Cannot find version information")

setup(
    name="tinymail",
    version=version,
    description="Compose MIME email and send it over SMTP",
    long_description=readme.read_text("utf-8"),
    long_description_content_type="text/x-rst",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"tinymail": ["py.typed"]},
    license="MIT",
    keywords=["smtp", "email", "mime", "asyncio"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: AsyncIO",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Communications :: Email",
    ],
    python_requires=">=3.11",
    install_requires=["jinja2"],
    extras_require={
        "testing": [
            "aiosmtpd",
            "hypothesis",
            "pytest",
            "pytest-asyncio",
            "pytest-cov",
            "trustme",
        ],
    },
)
