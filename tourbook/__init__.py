"""
tourbook is the data layer of a tour-booking API.

Its heart is APIFeatures: it translates the query string of a listing request
into a database query:

```
GET /api/v1/tours?duration[gte]=5&difficulty=easy&sort=-price&fields=name,price&page=2&limit=10
```

```python
features = APIFeatures(Tour.find(ssn), parse_query_string(qs)) \
    .filter() \
    .sort() \
    .limit_fields() \
    .paginate()
tours = features.query.all()
```

Under the hood, queries are MongoDB-style filter documents run against SqlAlchemy models
by DocumentQuery; and the CRUD handler factory serves the tours and the reviews.
"""

# Exceptions that are used here and there
from .exc import *

# DocumentQuery needs a lot of information about the properties of your models.
# All this is handled by the following class:
from .bag import ModelPropertyBags, CombinedBag

# The handlers convert every directive into an actual SqlAlchemy query
from . import handlers

# DocumentQuery: MongoDB-style queries over a model
from .query import DocumentQuery

# SqlAlchemy declarative base mixin that defines .find() on models
from .sa import DocumentQueryModelBase

# The query string translator
from .features import APIFeatures, QuerySpec, Projection, Pagination
from .query_string import parse_query_string, parse_query_params, parse_params

# CRUD: entity dict validation, and the handler factory
from .crud import CrudHelper, factory

# Helpers
from .util import Reusable, DocumentQuerySettingsDict, APIFeaturesSettingsDict, CrudSettingsDict
