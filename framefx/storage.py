"""
Storage layer for saved frames.
Handles all put and get operations in a single place, so we can easily handle new storage systems.
"""

import urllib.parse
import os
import mimetypes
import functools
import logging
from os.path import dirname

import boto3
import cv2

S3 = 's3'

logger = logging.getLogger(__name__)

@functools.lru_cache(maxsize=4)
def mkdirs(path):
    logger.debug("mkdirs %s",path)
    os.makedirs(path, exist_ok = True)

@functools.lru_cache(maxsize=4)
def s3_client():
    return boto3.session.Session().client( S3 )

def framefx_save(url, data, mimetype=None):
    o = urllib.parse.urlparse(url)
    logger.debug("url=%s o=%s len(data)=%s",url,o,len(data))
    if o.scheme=='file' or o.scheme=='':
        if dirname(o.path):
            mkdirs( dirname(o.path))
        with open(o.path,'wb') as f:
            f.write(data)
    elif o.scheme == S3:
        if mimetype is None:
            mimetype = mimetypes.guess_type(o.path)[0] or 'application/octet-stream'
        s3_client().put_object(Body=data,
                               Bucket=o.netloc,
                               Key=o.path[1:],
                               ContentType=mimetype)
    else:
        raise ValueError(f"unknown scheme {o.scheme} in url {url}")


def framefx_load(url):
    o = urllib.parse.urlparse(url)
    if o.scheme=='file' or o.scheme=='':
        with open(o.path,'rb') as f:
            return f.read()
    elif o.scheme == S3:
        return s3_client().get_object(Bucket=o.netloc, Key=o.path[1:])['Body'].read()
    else:
        raise ValueError(f"unknown scheme {o.scheme} in url {url}")


def encode(buf, ext='.png', jpeg_quality=90):
    """Encode an RGB or gray PixelBuffer as image file bytes."""
    img = buf.img[:,:,0] if buf.channels == 1 else cv2.cvtColor(buf.img, cv2.COLOR_RGB2BGR)
    ok, data = cv2.imencode(ext, img, [cv2.IMWRITE_JPEG_QUALITY, jpeg_quality])
    if not ok:
        raise ValueError(f"cannot encode {buf} as {ext}")
    return data.tobytes()


def save_frame(buf, url, jpeg_quality=90):
    """Write buf to url; the format follows the extension."""
    ext = os.path.splitext(urllib.parse.urlparse(url).path)[1] or '.png'
    framefx_save(url, encode(buf, ext, jpeg_quality))
