from setuptools import find_packages, setup

setup(
    name="templatize",
    version="0.1.0",
    description="Convert working projects into reusable templates and restore them",
    packages=find_packages(include=["templatize", "templatize.*"]),
    python_requires=">=3.9",
    install_requires=[
        "click>=8.0",
        "rich>=13.0.0",
        "PyYAML>=6.0",
        "toml>=0.10",
        "Jinja2>=3.0",
        "tree-sitter>=0.23",
        "tree-sitter-language-pack>=0.7,<1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pyfakefs>=5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "templatize=templatize.__main__:main",
        ]
    },
)
