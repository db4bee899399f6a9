from setuptools import setup

setup(name='caltext',
      version='0.1.0',
      description='Date, duration, recurrence rule and iCalendar text engines for calendar tools',
      long_description=open('README.rst').read(),
      author='Jochen Sprickerhof',
      author_email='remind@jochen.sprickerhof.de',
      license='GPLv3+',
      keywords=['iCalendar', 'RRULE', 'date parsing'],
      classifiers=[
          'Programming Language :: Python',
          'Development Status :: 4 - Beta',
          'Environment :: Console',
          'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
          'Topic :: Office/Business :: Scheduling',
          'Topic :: Software Development :: Libraries :: Python Modules',
      ],

      python_requires='>=3.10',
      install_requires=['python-dateutil', 'tzlocal', 'vobject'],
      extras_require={'test': ['pytest']},
      py_modules=['calevent', 'calduration', 'calrrule', 'caldate', 'calics',
                  'caltable', 'calconvert', 'ics_compare'],

      entry_points={
          'console_scripts': [
              'calconvert = calconvert:calconvert',
              'calparse = calconvert:calparse',
              'icscomp = ics_compare:main',
          ]
      },)
