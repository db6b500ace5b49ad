import enum


class UserRole(str, enum.Enum):
    ATHLETE = "ATHLETE"
    ADMIN = "ADMIN"


class ActivitySource(str, enum.Enum):
    DEVICE_HEALTH = "device-health"
    FITNESS_NETWORK = "fitness-network"

