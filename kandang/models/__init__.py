# Database models
from kandang.models.device import Device
from kandang.models.schedule import Schedule
from kandang.models.sensor_data import SensorData
from kandang.models.user import User

__all__ = ["Device", "Schedule", "SensorData", "User"]
