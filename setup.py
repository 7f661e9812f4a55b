from setuptools import setup


setup(
    name="nr-csv-analyzer",
    version="0.1.0",
    description="Daily per-network KPI summaries for 5G cell-performance CSV and Excel exports",
    packages=["nr_csv_analyzer"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "nr-csv-analyzer=nr_csv_analyzer.cli:main",
        ]
    },
)
