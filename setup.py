from setuptools import setup, find_namespace_packages

setup(
    name="uta-lyrics",
    version="0.1.0",
    description="Fetch Apple Music TTML lyrics for a song or album and convert them to LRC",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.10",
    license="MIT",
    packages=find_namespace_packages(include=["uta", "uta.*"]),
    package_data={"uta.i18n": ["*.json"]},
    install_requires=[
        "regex",
        "requests",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "ruff",
            "mypy",
        ]
    },
    entry_points={
        "console_scripts": [
            "uta=uta.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Text Processing :: Markup :: XML",
        "Topic :: Utilities",
    ],
    keywords="lyrics apple-music ttml lrc syllable karaoke",
)
