from setuptools import setup

package_name = 'mpf_localizer'

setup(
    name=package_name,
    version='0.1.0',
    packages=[package_name],
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        ('share/' + package_name + '/launch', ['launch/mpf.launch.py']),
    ],
    install_requires=['setuptools', 'numpy'],
    extras_require={'test': ['pytest', 'scipy']},
    zip_safe=True,
    maintainer='armaanm',
    maintainer_email='armaanmahajanbg@gmail.com',
    description='Modularized particle filter: twist prediction, retroactive resampling, GNSS correction',
    license='Apache-2.0',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'predictor = mpf_localizer.predictor_node:main',
            'gnss_particle_corrector = mpf_localizer.gnss_corrector_node:main',
            'switch_client = mpf_localizer.switch_client:main',
        ],
    },
)
