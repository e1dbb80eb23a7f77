[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "buildpack-lifecycle"
version = "0.1.0"
description = "Launch staged buildpack applications: environment preparation, profile sourcing, credhub interpolation and staging result models."
requires-python = ">=3.10"
keywords = [
    "buildpack",
    "launcher",
    "staging",
    "droplet",
    "credhub",
    "vcap",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Software Distribution",
]
dependencies = [
    "requests>=2.28",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
buildpack-launcher = "buildpack_lifecycle.launcher:main"
buildpack-shell = "buildpack_lifecycle.shell:main"
buildpack-getenv = "buildpack_lifecycle.getenv:main"

[tool.hatch.build.targets.wheel]
packages = ["buildpack_lifecycle"]

[tool.hatch.build.targets.sdist]
include = [
    "buildpack_lifecycle",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
