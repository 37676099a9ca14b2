from .crudhelper import CrudHelper
from . import factory
