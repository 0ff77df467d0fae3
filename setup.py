from setuptools import setup, find_packages

setup(
    name="winrm-cert-agent",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "cryptography>=42.0.0",
        "pydantic>=2.5.0",
        "PyYAML>=6.0",
        "pywin32>=306; sys_platform == 'win32'",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "winrm-cert-agent=winrm_cert_agent.agent:main",
        ],
    },
    python_requires=">=3.11",
)
