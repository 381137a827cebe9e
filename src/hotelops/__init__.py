"""hotelops -- 酒店运营后端：任务分派与状态同步核心"""

__version__ = "0.1.0"
