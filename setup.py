from setuptools import find_packages, setup

setup(
    name="sftp-remotefs",
    version="0.3.0",
    description="SFTP client for remote file and directory tree operations",
    author="Daniel T Sasser II",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "paramiko>=3.0.0",
    ],
    entry_points={
        "console_scripts": [
            "sftp-remotefs=sftp_remotefs.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
