from setuptools import setup, find_packages


def readme():
    with open('README.rst') as readme_file:
        return readme_file.read()


setup(name='sbdmodem',
      version='1.0.0',
      description='An API for interfacing to an Iridium short burst data '
                  'modem using AT commands over serial',
      long_description=readme(),
      license='Apache',
      packages=find_packages(exclude=['tests', 'tests.*']),
      install_requires=[
          'pyserial>=3.4',
          'aioserial>=1.3',
      ],
      extras_require={
          'test': [
              'pytest',
              'pytest-asyncio',
              'pytest-mock',
          ],
      },
      include_package_data=True,
      python_requires='>=3.10',
      zip_safe=False)
