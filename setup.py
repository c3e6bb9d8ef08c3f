from setuptools import setup, find_packages

setup(
    name="shootplan",
    version="1.0.0",
    author="Varun Israni",
    description="Production Scheduling AI Assistant",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app"],
    include_package_data=True,
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "python-dotenv",
        "openai",
        "openai-agents",
        "google-generativeai",
        "tenacity"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx"
        ]
    },
    python_requires=">=3.9",
)
