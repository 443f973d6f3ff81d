[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eggkit"
version = "0.1.0"
description = "Software models of classic PC devices for a small unikernel: PIC, keyboard, mouse, UART, CMOS clock, PCI, e1000, multiboot and a CGA text terminal"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = [
    "unikernel",
    "kernel",
    "x86",
    "cga",
    "ansi",
    "ps2",
    "pci",
    "e1000",
    "multiboot",
    "uart",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: System :: Emulators",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["eggkit"]

[tool.hatch.build.targets.sdist]
include = [
    "eggkit",
    "tests",
    "README.md",
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
warn_redundant_casts = true
