"""Detection, parsing, install and build steps for a Pipfile with pipenv."""