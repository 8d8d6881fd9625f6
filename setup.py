import os
import re
from pathlib import Path

from setuptools import setup, find_packages


def read_version():
    """Return the version string declared in modwt/__init__.py."""
    init_path = Path(__file__).parent / "modwt" / "__init__.py"
    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", init_path.read_text(), re.M)
    if match:
        return match.group(1)
    raise RuntimeError("Unable to find version string.")


# Set up the package
setup(
    name="modwt-cascade",
    version=read_version(),
    author="Scott Friedman and Project Contributors",
    author_email="",
    description="Multi-level MODWT cascade engines: sequential, concurrent and batch SoA kernels",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "pywavelets>=1.1.0",
    ],
    extras_require={
        "dev": ["pytest"],
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS :: MacOS X",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
