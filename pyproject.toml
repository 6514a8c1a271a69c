[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "metatube"
version = "0.1.0"
description = "Movie and actor metadata providers that scrape catalogue sites into uniform records"
requires-python = ">=3.10"
keywords = ["metadata", "scraper", "movies", "catalogue"]
classifiers = [
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Intended Audience :: Developers",
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "requests",
    "lxml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["metatube"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
