# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- HTTP ---
    "httpx>=0.27.0",

    # --- DATABASE & MODELS ---
    "duckdb>=0.10.0",
    "pydantic>=2.0.0",

    # --- CONFIG & TEMPLATES ---
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",
    "jinja2>=3.0.0",
]

extras_require = {
    # --- TESTS ---
    "test": [
        "pytest-asyncio>=0.23",
        "pytest",
    ],
}

setup(
    name="propconnect-client",
    version="0.3.0",
    description="PropConnect|Client",
    packages=find_packages(include=["propconnect", "propconnect.*"]),
    include_package_data=True,
    package_data={
        "propconnect.shared.config": ["settings/*.yaml"],
        "propconnect.shared.config.templates": ["*.j2"],
    },
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "propconnect=propconnect.portal.main:main",
        ],
    },
)
