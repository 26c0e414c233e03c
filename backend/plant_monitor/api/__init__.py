from plant_monitor.api.routes import router

__all__ = ["router"]
