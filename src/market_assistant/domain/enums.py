"""Domain enumerations for the market assistant core.

These enums capture the fixed vocabularies shared by the selection pipeline
and the chat sessions: screening markets and industries, recommendation risk
levels, investor risk preferences, pipeline lifecycle states and the quick
selection presets.

``MarketType`` and ``IndustryType`` values are the identifiers the criteria
model is asked to emit; their Chinese display names are exposed via
``label``.
"""

from enum import Enum


class MarketType(Enum):
    """Market segment a screen runs against."""

    ALL_A_SHARES = "AllAShares"
    SHANGHAI_A_SHARES = "ShanghaiAShares"
    SHENZHEN_A_SHARES = "ShenzhenAShares"

    @property
    def label(self) -> str:
        return _MARKET_LABELS[self]


_MARKET_LABELS = {
    MarketType.ALL_A_SHARES: "全部A股",
    MarketType.SHANGHAI_A_SHARES: "沪市A股",
    MarketType.SHENZHEN_A_SHARES: "深市A股",
}


class IndustryType(Enum):
    """Industry filter for a screen. ``ALL`` means no industry restriction."""

    ALL = "All"
    # technology
    COMPUTER_EQUIPMENT = "ComputerEquipment"
    SOFTWARE_DEVELOPMENT = "SoftwareDevelopment"
    SEMICONDUCTOR = "Semiconductor"
    # new energy
    BATTERY = "Battery"
    PHOTOVOLTAIC_EQUIPMENT = "PhotovoltaicEquipment"
    WIND_POWER_EQUIPMENT = "WindPowerEquipment"
    # healthcare
    CHEMICAL_PHARMACEUTICAL = "ChemicalPharmaceutical"
    BIOLOGICAL_PRODUCTS = "BiologicalProducts"
    MEDICAL_DEVICES = "MedicalDevices"
    # consumer
    LIQUOR = "Liquor"
    BEVERAGES_DAIRY = "BeveragesDairy"
    FOOD_PROCESSING = "FoodProcessing"
    # finance and property
    JOINT_STOCK_BANK = "JointStockBank"
    STATE_BANKS = "StateBanks"
    REAL_ESTATE_DEVELOPMENT = "RealEstateDevelopment"
    # autos
    PASSENGER_VEHICLES = "PassengerVehicles"
    AUTO_PARTS = "AutoParts"
    # telecom
    COMMUNICATION_EQUIPMENT = "CommunicationEquipment"
    COMMUNICATION_SERVICES = "CommunicationServices"
    # utilities and industrials
    POWER = "Power"
    CHEMICAL_MATERIALS = "ChemicalMaterials"
    CHEMICAL_PRODUCTS = "ChemicalProducts"
    CONSTRUCTION_MACHINERY = "ConstructionMachinery"
    SPECIALIZED_EQUIPMENT = "SpecializedEquipment"
    # appliances
    WHITE_APPLIANCES = "WhiteAppliances"
    SMALL_APPLIANCES = "SmallAppliances"

    @property
    def label(self) -> str:
        return _INDUSTRY_LABELS[self]


_INDUSTRY_LABELS = {
    IndustryType.ALL: "全部",
    IndustryType.COMPUTER_EQUIPMENT: "计算机设备",
    IndustryType.SOFTWARE_DEVELOPMENT: "软件开发",
    IndustryType.SEMICONDUCTOR: "半导体",
    IndustryType.BATTERY: "电池",
    IndustryType.PHOTOVOLTAIC_EQUIPMENT: "光伏设备",
    IndustryType.WIND_POWER_EQUIPMENT: "风电设备",
    IndustryType.CHEMICAL_PHARMACEUTICAL: "化学制药",
    IndustryType.BIOLOGICAL_PRODUCTS: "生物制品",
    IndustryType.MEDICAL_DEVICES: "医疗器械",
    IndustryType.LIQUOR: "白酒",
    IndustryType.BEVERAGES_DAIRY: "饮料乳品",
    IndustryType.FOOD_PROCESSING: "食品加工",
    IndustryType.JOINT_STOCK_BANK: "股份制银行",
    IndustryType.STATE_BANKS: "国有大型银行",
    IndustryType.REAL_ESTATE_DEVELOPMENT: "房地产开发",
    IndustryType.PASSENGER_VEHICLES: "乘用车",
    IndustryType.AUTO_PARTS: "汽车零部件",
    IndustryType.COMMUNICATION_EQUIPMENT: "通信设备",
    IndustryType.COMMUNICATION_SERVICES: "通信服务",
    IndustryType.POWER: "电力",
    IndustryType.CHEMICAL_MATERIALS: "化学原料",
    IndustryType.CHEMICAL_PRODUCTS: "化学制品",
    IndustryType.CONSTRUCTION_MACHINERY: "工程机械",
    IndustryType.SPECIALIZED_EQUIPMENT: "专用设备",
    IndustryType.WHITE_APPLIANCES: "白色家电",
    IndustryType.SMALL_APPLIANCES: "小家电",
}


class RiskLevel(Enum):
    """Three-way risk grade attached to every recommendation."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class SelectionType(Enum):
    """Which kind of request produced a selection result."""

    USER_REQUEST = "user_request"
    NEWS_BASED = "news_based"


class RiskPreference(Enum):
    """Normalised investor risk appetite."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class MessageRole(Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class StageName(Enum):
    """Identifiers of the three selection pipeline stages."""

    GENERATE_CRITERIA = "GenerateCriteria"
    SCREEN_STOCKS = "ScreenStocks"
    ANALYZE_STOCKS = "AnalyzeStocks"


class PipelineState(Enum):
    """Finite-state-machine states for a selection pipeline run."""

    CREATED = "created"
    CRITERIA_GENERATED = "criteria_generated"
    SCREENED = "screened"
    ANALYZED = "analyzed"  # terminal
    FAILED = "failed"  # terminal


class QuickSelectionStrategy(Enum):
    """Preset one-click screening strategies."""

    VALUE_STOCKS = "value_stocks"
    GROWTH_STOCKS = "growth_stocks"
    ACTIVE_STOCKS = "active_stocks"
    LARGE_CAP = "large_cap"
    SMALL_CAP = "small_cap"
    DIVIDEND = "dividend"
