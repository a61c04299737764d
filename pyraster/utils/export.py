import logging
import os

logger = logging.getLogger(__name__)


def unique_filename(filename):
    # never overwrite, append _1, _2, ... instead
    base, ext = os.path.splitext(filename)
    counter = 1
    new_filename = filename
    while os.path.exists(new_filename):
        new_filename = f'{base}_{counter}{ext}'
        counter += 1
    return new_filename


def save_image(image, filename):
    '''save a PIL image next to any earlier saves, format follows the extension

    returns: the filename actually written
    '''

    dirpath = os.path.dirname(filename)
    if dirpath:
        os.makedirs(dirpath, exist_ok=True)

    new_filename = unique_filename(filename)
    image.save(new_filename)
    logger.info('saved %dx%d image to %s', image.width, image.height, new_filename)
    return new_filename
