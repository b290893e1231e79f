from setuptools import setup, find_packages

setup(
    name="elector",
    version="0.1",
    author="The elector authors",
    description="Kubernetes leader election helper",
    packages=find_packages(exclude=["tests"]),
    python_requires=">=3.9",
    install_requires=["kubernetes"],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["elector=elector.commands.main:main"],
    },
)
