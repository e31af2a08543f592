[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtlink"
version = "0.1.0"
description = "Manage Linux network links and addresses over rtnetlink sockets"
requires-python = ">=3.10"
dependencies = []
keywords = ["netlink", "rtnetlink", "linux", "networking", "ip", "link", "address"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
rtlink = "rtlink.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rtlink"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
