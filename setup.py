from setuptools import setup, find_packages

setup(
    name="icy-nowplaying",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "requests",
        "urllib3",
        "python-dotenv",
        "flask",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "icy-nowplaying=icy_nowplaying.cli:main",
        ],
    },
    description="Now-playing titles from ICY (SHOUTcast/Icecast) streams",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)
