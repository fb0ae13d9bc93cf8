from ecopeta.models.location import Location  # noqa: F401
from ecopeta.models.notification import Notification  # noqa: F401
from ecopeta.models.pickup import PickupRequest, PickupWasteItem  # noqa: F401
from ecopeta.models.points import PointsHistory  # noqa: F401
from ecopeta.models.review import Review, ReviewHelpful  # noqa: F401
from ecopeta.models.user import User  # noqa: F401
from ecopeta.models.waste_category import WasteCategory  # noqa: F401
