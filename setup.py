"""Setup script for PerfTelemetry."""

from setuptools import find_packages, setup

setup(
    name="perftelemetry",
    version="0.1.0",
    description="Client-side performance instrumentation, web-vitals scoring and best-effort reporting",
    author="PerfTelemetry Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "simpy>=4.0",
        "numpy>=1.24",
        "pandas>=2.0",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "matplotlib>=3.7",
        "click>=8.1",
        "httpx>=0.24",
        "psutil>=5.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "perftelemetry=perftelemetry.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
