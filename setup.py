from setuptools import find_packages
from setuptools import setup


version = '0.1.0'


def read_requirements(filename):
    requires = []
    with open(filename) as f:
        for line in f:
            req = line.split('#')[0].strip()
            if req:
                requires.append(req)
    return requires


setup_requires = []

install_requires = read_requirements('requirements.txt')
docs_install_requires = read_requirements('requirements_docs.txt')
opt_install_requires = read_requirements('requirements_opt.txt')
test_install_requires = ['pytest']

extra_all_requires = (docs_install_requires + opt_install_requires
                      + test_install_requires)


setup(
    name='differentiable-rmap',
    version=version,
    description='Differentiable reachability maps and incremental QP '
                'planners for footstep, placement and loco-manipulation '
                'planning',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    license='MIT',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'Natural Language :: English',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Programming Language :: Python :: Implementation :: CPython',
    ],
    python_requires='>=3.8',
    packages=find_packages(exclude=('tests', 'tests.*')),
    zip_safe=False,
    setup_requires=setup_requires,
    install_requires=install_requires,
    extras_require={
        'opt': opt_install_requires,
        'docs': docs_install_requires,
        'test': test_install_requires,
        'all': extra_all_requires,
    },
)
