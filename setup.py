from setuptools import setup


setup(
    name="roster-doctor",
    version="0.1.0",
    description="Local-first validation and cleanup for client, worker and task allocation spreadsheets",
    packages=["roster_doctor", "roster_doctor.validators"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "roster-doctor=roster_doctor.cli:main",
        ]
    },
)
