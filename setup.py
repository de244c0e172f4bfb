from setuptools import find_packages, setup

setup(
    name="container-bootstrap",
    version="0.1.0",
    packages=find_packages(
        include=[
            "cb_common",
            "cb_common.*",
            "cb_controller",
            "cb_controller.*",
            "cb_admin",
            "cb_admin.*",
        ]
    ),
    install_requires=[
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-xdist>=3.3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cb-admin=cb_admin.cli:main",
        ],
    },
    python_requires=">=3.10",
)
