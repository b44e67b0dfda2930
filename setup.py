from setuptools import setup, find_namespace_packages

setup(
    name="access-review-deploy",
    version="0.1.0",
    packages=find_namespace_packages(include=["access_review_deploy*"]),
    py_modules=["cli"],
    install_requires=[
        "boto3",
        "botocore",
    ],
    extras_require={
        "test": [
            "pytest",
            "moto[awslambda,cloudformation,iam,s3,ses,sts]>=5",
        ],
    },
    entry_points={
        'console_scripts': [
            'access-review-deploy=cli:main',
            'access-review-run=cli:run_report_main',
        ],
    },
    description="Deploys the scheduled AWS access review Lambda and its report bucket",
    python_requires='>=3.8',
)
