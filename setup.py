from setuptools import setup, find_packages


setup(
    name="binassets",
    version="0.1",
    packages=find_packages(include=["binassets", "binassets.*"]),
    description="Pack a file tree into a Python module and serve it as an optionally encrypted, read-only virtual filesystem.",
    author="binassets contributors",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
    ],
    entry_points={
        "console_scripts": [
            "binassets=binassets.cli:main",
        ]
    },
)
