from setuptools import setup, find_packages

setup(name='cbflow',
      version='0.1.0',
      description='Control-flow combinators for callback-style functions: parallel, sequential, retry, memoise, flood protection and throttling',
      classifiers=[
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: MIT License",
          "Framework :: Trio",
      ],
      keywords='callback async trio concurrency throttle memoise',
      license='MIT',
      python_requires='>=3.11',
      install_requires=['trio', 'outcome'],
      extras_require={'test': ['pytest']},
      packages=find_packages(),
)
