from setuptools import setup, find_packages

setup(
    name="hl7_fhir_bridge",
    version="1.0.0",
    packages=find_packages(include=["hl7bridge", "hl7bridge.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic",
        "python-dotenv",
        "httpx",
        "hl7",
    ],
    extras_require={
        "test": [
            "pytest",
            "anyio",
        ],
    },
    entry_points={
        "console_scripts": [
            "hl7-fhir-bridge=hl7bridge.main:run",
        ],
    },
)
