from setuptools import setup, find_packages

setup(
    name="opcua_bridge",
    version="0.1.0",
    description="OPC UA Variant <-> JSON bridge with typed, batched method invocation",
    author="OPC UA Bridge Team",
    packages=find_packages(include=["opcua_bridge", "opcua_bridge.*"]),
    install_requires=[
        "protobuf>=3.20.0",
        "opentelemetry-api>=1.14.0",
        "opentelemetry-sdk>=1.14.0",
        "opentelemetry-exporter-otlp>=1.14.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
    },
    python_requires=">=3.9",
)
