"""
Setup script for contextkit: retrieval-augmented context assembly for language-model calls
"""

from setuptools import setup, find_packages

setup(
    name="contextkit",
    version="0.1.0",
    description="Retrieval-augmented context pipeline with token-budgeted context assembly",
    long_description="Text normalization, chunking, knowledge retrieval with post-processing, and a context builder that allocates a token budget across prioritized sources",
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests*"]),
    python_requires=">=3.9",
    install_requires=[
        # Core dependencies
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sentence-transformers>=3.0.0",
        "python-dotenv>=1.0.0",

        # Document extraction
        "PyPDF2>=3.0.0",

        # Data processing
        "numpy>=1.24.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=1.0.0",
            "flake8>=4.0.0",
        ],
    },
    include_package_data=True,
    author="contextkit Team",
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="ai rag retrieval context-assembly embeddings chunking",
)
