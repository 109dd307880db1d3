"""Packaging information for mountperf."""

import re
import sys

import setuptools

if sys.version_info[:3] < (3, 7, 0):
    print("mountperf requires Python 3.7 to run.")
    sys.exit(1)

install_requires = [
    "msgpack>=1.0.0",
]

extras_require = {
    "dev": [
        "flake8>=3.7.9",
        "flake8-docstrings>=1.5.0",
        "flake8-import-order>=0.18.1",
        "black>=19.10b0",
        "mypy>=0.770",
        "pytest>=5.4.1",
        "pytest-cov>=2.8.1",
    ]
}


def _version():
    with open("mountperf/constants.py") as f:
        return re.search(r'^VERSION = "(.+)"$', f.read(), re.MULTILINE).group(1)


def _long_description():
    with open("README.md") as f:
        return f.read()


setuptools.setup(
    name="mountperf",
    version=_version(),
    description="Performance telemetry and cache advice for mounted remote folders.",
    long_description=_long_description(),
    long_description_content_type="text/markdown",
    license="Apache",
    packages=setuptools.find_packages(),
    install_requires=install_requires,
    extras_require=extras_require,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.7",
        "Intended Audience :: Developers",
        "Topic :: System :: Filesystems",
        "Topic :: System :: Monitoring",
    ],
    python_requires=">=3.7",
)
