[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "billingsys"
version = "0.1.0"
description = "Order, invoice and shipment services with a JSON gateway for a small billing system"
requires-python = ">=3.10"
keywords = ["billing", "invoice", "orders", "shipments", "accounting", "sqlite", "flask"]
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
    "Framework :: Flask",
    "Topic :: Office/Business :: Financial :: Accounting",
]
dependencies = [
    "pyyaml",
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
billingsys-billing = "billingsys.billing.handler:main"
billingsys-shipment = "billingsys.shipment.handler:main"
billingsys-bff = "billingsys.bff.app:main"

[tool.hatch.build.targets.wheel]
packages = ["billingsys"]

[tool.hatch.build.targets.sdist]
include = ["billingsys", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
