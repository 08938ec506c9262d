[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "filedrive"
version = "0.1.0"
description = "A small file storage HTTP service with Google sign-in, JWT cookies and a SQL metadata store"
requires-python = ">=3.10"
keywords = ["file storage", "upload", "download", "oauth", "jwt", "flask", "http server"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask>=2.3",
    "sqlalchemy>=2.0",
    "pyjwt>=2.8",
    "httpx>=0.25",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[project.scripts]
filedrive = "filedrive.app:main"

[tool.hatch.build.targets.wheel]
packages = ["filedrive"]

[tool.hatch.build.targets.sdist]
include = ["filedrive", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
