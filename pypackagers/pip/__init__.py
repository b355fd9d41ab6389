"""Detection, install and build steps for requirements files with pip."""