from .reusable import Reusable
from .settings_handler import DocumentQuerySettingsHandler
from .settings_dict import DocumentQuerySettingsDict, APIFeaturesSettingsDict, CrudSettingsDict
