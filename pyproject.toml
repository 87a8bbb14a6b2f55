[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "irpasses"
version = "0.1.0"
description = "Intra-procedural analyses over a textual SSA IR, timed under sequential and concurrent schedulers"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "ir", "ssa", "liveness", "points-to", "slicing", "cfa", "dataflow"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
irpasses = "irpasses.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["irpasses"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
