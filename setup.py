import io

from setuptools import find_packages, setup

with io.open('calysto_lc3sim/_version.py', encoding="utf-8") as fid:
    for line in fid:
        if line.startswith('__version__'):
            __version__ = line.strip().split()[-1][1:-1]
            break

with open('README.md') as f:
    readme = f.read()

setup(name='calysto_lc3sim',
      version=__version__,
      description='An LC-3 machine code simulator with a Jupyter kernel based on MetaKernel',
      long_description=readme,
      long_description_content_type='text/markdown',
      url="https://github.com/Calysto/calysto_lc3sim",
      install_requires=["metakernel", "jupyter_client"],
      extras_require={"test": ["pytest"]},
      packages=find_packages(include=["calysto_lc3sim", "calysto_lc3sim.*"]),
      entry_points={
          'console_scripts': [
              'lc3sim = calysto_lc3sim.cli:main',
              'calysto_lc3sim-install = calysto_lc3sim.install:main',
          ],
      },
      classifiers = [
          'Framework :: IPython',
          'License :: OSI Approved :: BSD License',
          'Programming Language :: Python :: 3',
          'Topic :: System :: Emulators',
      ]
)
