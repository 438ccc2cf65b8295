# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="appfiles",
    version="0.1.0",
    description="Dependency file collection and unpacked-directory planning for Electron app packaging",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["appfiles", "appfiles.*"]),
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
