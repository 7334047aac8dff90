from setuptools import setup, find_packages

setup(
    name='imu_mocap_sdk',
    version='0.1.0',
    description='Wearable IMU sensor streams to a T-pose calibrated humanoid skeleton pose',
    packages=find_packages(include=['imu_mocap_sdk', 'imu_mocap_sdk.*']),
    package_data={
        'imu_mocap_sdk': ['configs/*.json'],
    },
    python_requires='>=3.10',
    install_requires=[
        'numpy',
        'scipy>=1.14',
        'websockets>=12.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
