from setuptools import setup, find_packages

setup(
    name="uiauto-device",
    version="1.0.0",
    packages=find_packages(include=["uiauto_device", "uiauto_device.*"]),
    install_requires=[
        "pyyaml>=5.4",
        "jsonschema>=4.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    package_data={
        "uiauto_device": ["schemas/*.json"],
    },
    entry_points={
        "console_scripts": [
            "uiauto-device=uiauto_device.cli:main",
        ],
    },
)
