from setuptools import setup, find_packages


setup(name="goalpost",
      version='0.1',
      description='Goal Conversion Archiving',
      long_description='',
      classifiers=[
          'Development Status :: 4 - Beta',
          'Programming Language :: Python :: 3',
          'Topic :: Internet :: WWW/HTTP :: Site Management',
          'Topic :: Internet :: Log Analysis',
      ],
      keywords='analytics goals conversions archiving',
      url='',
      license='MIT',
      python_requires='>=3.8',
      install_requires=[
          'sqlalchemy>=1.4',
          'pytz',
          'pyzmq',
          'simplejson',
      ],
      extras_require={
          'test': ['pytest'],
      },
      packages=find_packages(),
      entry_points=dict(
          console_scripts=[
              'goalpost-archive=goalpost.cli:main',
              'goalpost-server=goalpost.server:main',
              'goalpost-client=goalpost.client:main',
          ]
      ),
      zip_safe=False)
