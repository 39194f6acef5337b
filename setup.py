from setuptools import find_packages, setup

setup(
    name="schematui",
    version="0.3.0",
    description="A schema-driven terminal configuration editor with dynamic options",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Nemesis",
    author_email="nemesiswasalientoo@proton.me",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    license="MIT",
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "structlog>=23.1",
        "tomlkit>=0.12",
        "windows-curses;platform_system=='Windows'",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": ["schematui=schematui.__main__:main"],
    },
)
