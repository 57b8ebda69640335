"""
harpipe - Build HAR logs from Chrome DevTools Protocol event streams
"""
from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="harpipe",
    version="0.1.0",
    author="Skyler Saleebyan",
    author_email="skylerbsaleebyan@gmail.com",
    description="Convert Chrome DevTools Protocol Page/Network events into HAR 1.2 logs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/skyler14/harpipe",
    # Treat current directory as the harpipe package
    packages=['harpipe'],
    package_dir={'harpipe': '.'},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "playwright>=1.40.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "deepdiff>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "harpipe=harpipe.cli:main",
        ],
    },
)
