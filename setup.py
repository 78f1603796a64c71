#!/usr/bin/env python3
"""
Setup script for SEIO - Sistema Evaluativo Integral Online

Install with:
    pip install -e .

With test dependencies:
    pip install -e ".[dev]"
"""

from setuptools import setup, find_namespace_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

# API server dependencies
requirements = [
    "fastapi>=0.110.0",
    "uvicorn[standard]>=0.27.0",
    "sqlalchemy[asyncio]>=2.0.25",
    "aiomysql>=0.2.0",
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
    "email-validator>=2.1.0",
    "python-jose[cryptography]>=3.3.0",
    "bcrypt>=4.1.0",
    "aiosmtplib>=3.0.0",
    "reportlab>=4.0.0",
    "boto3>=1.34.0",
    "slowapi>=0.1.9",
    "python-multipart>=0.0.6",
    "aiofiles>=23.2.1",
    "faker>=22.0.0",
]

setup(
    name="seio",
    version="1.0.0",
    description="SEIO - school evaluation, phase grading and improvement plan API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="SEIO Team",
    license="MIT",
    package_dir={"": "backend"},
    packages=find_namespace_packages(where="backend", include=["app", "app.*"]),
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
            "aiosqlite>=0.19.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "seio-server=app.main:run",
            "seio-seed=app.db.seed_data:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
    ],
    keywords="education evaluation grades improvement-plans fastapi",
)
