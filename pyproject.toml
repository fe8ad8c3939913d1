[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "carechain"
version = "0.1.0"
description = "In-memory healthcare registries: immunizations, insurers, lab orders, claims, patients, imaging, vitals and prescriptions"
requires-python = ">=3.10"
dependencies = []
keywords = ["healthcare", "registry", "claims", "prescriptions", "imaging", "vitals", "immunization"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Healthcare Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["carechain"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
