from setuptools import setup, find_packages

setup(
    name="tableorders",
    version="0.1.0",
    packages=find_packages(include=["tableorders", "tableorders.*", "menudigital", "menudigital.*"]),
    include_package_data=True,
    install_requires=[
        "Django>=4.2",
        "djangorestframework>=3.14",
        "stripe>=8.0",
        "python-dotenv>=1.0",
        "django-cors-headers>=4.0",
        "whitenoise>=6.5",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-django>=4.5",
        ],
        "postgres": [
            "psycopg[binary]>=3.1",
        ],
    },
    author="Wayne",
    author_email="support@techwithwayne.com",
    description="Digital menu ordering with per-table locking, hosted payments and a stale lock reaper for Django.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    url="https://techwithwayne.com",
    license="MIT",
    classifiers=[
        "Framework :: Django",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "License :: OSI Approved :: MIT License"
    ],
    python_requires='>=3.9',
)
