# setup.py
from setuptools import setup, find_packages

setup(
    name="salesboard",
    version="0.1.0",
    description="Monthly sales reports over a seeded store of product-sale transactions",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/salesboard",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=2.0",
        "anyio>=4.1",
        "fastapi>=0.100",
        "uvicorn>=0.20",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "salesboard=sales_tracker.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
