"""
services/industry.py
--------------------
Starter catalogue metadata per business type, copied onto a company at
registration. Unknown business types fall back to "general".
"""

from typing import Any, Dict, List

IndustryProfile = Dict[str, List[str]]

INDUSTRY_FEATURES: Dict[str, IndustryProfile] = {
    "electronics": {
        "categories": ["Mobile Phones", "Laptops", "TVs", "Audio", "Cameras", "Gaming", "Accessories", "Home Appliances"],
        "attributes": ["Brand", "Model", "Warranty Period", "IMEI/Serial Number", "Color", "Storage Capacity"],
        "uom": ["Unit", "Box", "Set"],
        "features": ["Warranty Tracking", "IMEI/Serial Number Management", "Supplier Management"],
    },
    "fashion": {
        "categories": ["Men's Wear", "Women's Wear", "Kids Wear", "Shoes", "Bags", "Accessories", "Sportswear"],
        "attributes": ["Size", "Color", "Material", "Brand", "Season", "Gender", "Style"],
        "uom": ["Piece", "Pair", "Set", "Dozen"],
        "features": ["Size & Color Variants", "Seasonal Collections", "Fashion Trends"],
    },
    "pharmacy": {
        "categories": ["Prescription Drugs", "OTC Medicines", "Supplements", "Personal Care", "Medical Devices", "Baby Care"],
        "attributes": ["Dosage", "Expiry Date", "Batch Number", "Manufacturer", "Active Ingredient"],
        "uom": ["Tablet", "Capsule", "Bottle", "Box", "Tube", "Piece"],
        "features": ["Expiry Date Tracking", "Batch Management", "Prescription Management", "Drug Interactions"],
    },
    "grocery": {
        "categories": ["Fresh Produce", "Dairy", "Bakery", "Beverages", "Snacks", "Frozen Foods", "Household"],
        "attributes": ["Brand", "Weight/Volume", "Expiry Date", "Batch Number", "Origin"],
        "uom": ["Kg", "Gram", "Liter", "Piece", "Pack", "Carton"],
        "features": ["Expiry Date Tracking", "Barcode Scanning", "Weight Management", "Batch Tracking"],
    },
    "hardware": {
        "categories": ["Hand Tools", "Power Tools", "Plumbing", "Electrical", "Building Materials", "Paint", "Safety Equipment"],
        "attributes": ["Brand", "Material", "Size/Dimension", "Color", "Certification"],
        "uom": ["Piece", "Set", "Meter", "Kg", "Bag", "Box", "Roll"],
        "features": ["Bulk Sales", "Project Management", "Contractor Pricing"],
    },
    "furniture": {
        "categories": ["Living Room", "Bedroom", "Office", "Kitchen", "Outdoor", "Decor", "Lighting"],
        "attributes": ["Material", "Color", "Dimensions", "Style", "Brand", "Assembly Required"],
        "uom": ["Piece", "Set", "Pair"],
        "features": ["Custom Orders", "Assembly Service", "Delivery Tracking"],
    },
    "automotive": {
        "categories": ["Engine Parts", "Body Parts", "Tires", "Batteries", "Fluids", "Accessories", "Tools"],
        "attributes": ["Brand", "Part Number", "Compatibility", "Year", "Model", "Condition"],
        "uom": ["Piece", "Set", "Liter", "Pair"],
        "features": ["Vehicle Compatibility", "Part Number Search", "Service History"],
    },
    "restaurant": {
        "categories": ["Appetizers", "Main Course", "Desserts", "Beverages", "Alcohol", "Special Menu"],
        "attributes": ["Ingredients", "Allergens", "Spice Level", "Serving Size", "Preparation Time"],
        "uom": ["Plate", "Bowl", "Cup", "Bottle", "Glass", "Serving"],
        "features": ["Table Management", "Recipe Management", "Ingredient Tracking", "Menu Builder"],
    },
    "beauty": {
        "categories": ["Skincare", "Makeup", "Hair Care", "Fragrances", "Nail Care", "Men's Grooming", "Tools"],
        "attributes": ["Brand", "Shade/Color", "Skin Type", "Size", "Expiry Date", "Ingredients"],
        "uom": ["Piece", "Bottle", "Tube", "Set", "ml", "gm"],
        "features": ["Shade Management", "Expiry Tracking", "Customer Skin Profiles"],
    },
    "bookstore": {
        "categories": ["Fiction", "Non-Fiction", "Academic", "Children", "Stationery", "Art Supplies", "Office Supplies"],
        "attributes": ["Author", "ISBN", "Publisher", "Edition", "Language", "Binding"],
        "uom": ["Piece", "Set", "Pack", "Box"],
        "features": ["ISBN Management", "Author Catalog", "Pre-orders", "Book Reviews"],
    },
    "sports": {
        "categories": ["Fitness Equipment", "Sports Gear", "Apparel", "Footwear", "Supplements", "Accessories"],
        "attributes": ["Brand", "Size", "Color", "Sport Type", "Material", "Weight"],
        "uom": ["Piece", "Pair", "Set", "Kg"],
        "features": ["Size Charts", "Equipment Maintenance", "Membership Management"],
    },
    "jewelry": {
        "categories": ["Rings", "Necklaces", "Bracelets", "Earrings", "Watches", "Precious Stones", "Custom Designs"],
        "attributes": ["Metal Type", "Karat", "Stone Type", "Weight", "Size", "Certification"],
        "uom": ["Piece", "Gram", "Carat", "Pair"],
        "features": ["Custom Orders", "Certification Management", "Gold Price Tracking", "Repair Tracking"],
    },
    "technology": {
        "categories": ["Software", "Hardware", "Services", "Cloud Solutions", "Consulting", "Support"],
        "attributes": ["License Type", "Version", "Platform", "Duration", "Support Level"],
        "uom": ["License", "User", "Month", "Year", "Hour", "Project"],
        "features": ["License Management", "Project Tracking", "Time Billing", "SLA Management"],
    },
    "wholesale": {
        "categories": ["Consumer Goods", "Industrial", "Food & Beverages", "Electronics", "Textiles", "Chemicals"],
        "attributes": ["Brand", "Minimum Order", "Lead Time", "Origin", "Certification"],
        "uom": ["Piece", "Carton", "Pallet", "Container", "Kg", "Ton"],
        "features": ["Bulk Pricing", "MOQ Management", "Distributor Network", "Credit Terms"],
    },
    "general": {
        "categories": ["Products", "Services", "Merchandise"],
        "attributes": ["Brand", "Model", "Color", "Size"],
        "uom": ["Unit", "Piece", "Set", "Box"],
        "features": ["General Inventory", "Sales Tracking"],
    },
}


def industry_features(business_type: str | None) -> Dict[str, Any]:
    key = (business_type or "general").strip().lower()
    return {k: list(v) for k, v in INDUSTRY_FEATURES.get(key, INDUSTRY_FEATURES["general"]).items()}
