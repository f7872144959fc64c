"""
Schema definition of the tender status report queried by cell exports.
Column order here is the spreadsheet column order of the export template.
"""

EXPORT_TABLE = {
    "name": "tender_status_report",
    "description": "One row per drug/consumable item with its rate-contract and tender pipeline status.",
    "columns": [
        {"name": "item_code", "label": "Item Code", "type": "varchar", "description": "Item master code"},
        {"name": "item_name", "label": "Item Name", "type": "varchar", "description": "Item description"},
        {"name": "strength", "label": "Strength", "type": "varchar", "description": "Strength / specification"},
        {"name": "unit", "label": "Unit", "type": "varchar", "description": "Unit of issue"},
        {"name": "item_type", "label": "Item Type", "type": "varchar", "description": "Record type (Drugs, Consumables, Equipment)"},
        {"name": "category_name", "label": "Category", "type": "varchar", "description": "Therapeutic category"},
        {"name": "group_name", "label": "Group", "type": "varchar", "description": "Item group"},
        {"name": "edl_flag", "label": "EDL", "type": "char(1)", "description": "Y when the item is on the Essential Drug List", "nullable": True},
        {"name": "abc_category", "label": "ABC Category", "type": "char(1)", "description": "ABC classification by consumption value (A, B, C)", "nullable": True},
        {"name": "indent_qty", "label": "Indent Qty", "type": "numeric", "description": "Indented quantity for the year", "nullable": True},
        {"name": "indent_value", "label": "Indent Value", "type": "numeric", "description": "Indented value (INR)", "nullable": True},
        {"name": "annual_requirement", "label": "Annual Requirement", "type": "numeric", "description": "Annual requirement quantity", "nullable": True},
        {"name": "rc_status", "label": "RC Status", "type": "varchar", "description": "Rate contract status (Active, Expired, Not Available ...)"},
        {"name": "rc_start_date", "label": "RC Start Date", "type": "date", "description": "Rate contract start", "nullable": True},
        {"name": "rc_end_date", "label": "RC End Date", "type": "date", "description": "Rate contract end", "nullable": True},
        {"name": "rc_rate", "label": "RC Rate", "type": "numeric", "description": "Contracted unit rate", "nullable": True},
        {"name": "supplier_name", "label": "Supplier Name", "type": "varchar", "description": "Rate contract supplier", "nullable": True},
        {"name": "tender_id", "label": "Tender ID", "type": "bigint", "description": "Tender identifier", "nullable": True},
        {"name": "tender_no", "label": "Tender No", "type": "varchar", "description": "Published tender number", "nullable": True},
        {"name": "tender_description", "label": "Tender Description", "type": "varchar", "description": "Tender title", "nullable": True},
        {"name": "tender_status", "label": "Tender Status", "type": "varchar", "description": "Current tender stage (To Be Tendered, Live, Price Opened ...)", "nullable": True},
        {"name": "tender_progress_remarks", "label": "Tender Progress Remarks", "type": "varchar", "description": "Progress remark shown in status summaries", "nullable": True},
        {"name": "status_action", "label": "Status/Action", "type": "varchar", "description": "Pending action owner / next step", "nullable": True},
        {"name": "tender_publish_date", "label": "Tender Publish Date", "type": "date", "description": "Date the tender was published", "nullable": True},
        {"name": "bid_submission_end_date", "label": "Bid Submission End Date", "type": "date", "description": "Last date of bid submission", "nullable": True},
        {"name": "cover_a_opening_date", "label": "Cover A Opening Date", "type": "date", "description": "Technical cover A opening", "nullable": True},
        {"name": "cover_b_opening_date", "label": "Cover B Opening Date", "type": "date", "description": "Technical cover B opening", "nullable": True},
        {"name": "price_bid_opening_date", "label": "Price Bid Opening Date", "type": "date", "description": "Price bid (cover C) opening", "nullable": True},
        {"name": "no_of_bids_received", "label": "No. of Bids Received", "type": "integer", "description": "Bids received for the item", "nullable": True},
        {"name": "is_cover_a_bid_found", "label": "Cover A Bid Found", "type": "smallint", "description": "1 when a cover A bid exists", "nullable": True},
        {"name": "is_cover_b_bid_found", "label": "Cover B Bid Found", "type": "smallint", "description": "1 when a cover B bid exists", "nullable": True},
        {"name": "is_price_bid_found", "label": "Price Bid Found", "type": "smallint", "description": "1 when a price bid exists", "nullable": True},
        {"name": "l1_supplier", "label": "L1 Supplier", "type": "varchar", "description": "Lowest bidder", "nullable": True},
        {"name": "l1_rate", "label": "L1 Rate", "type": "numeric", "description": "Lowest quoted rate", "nullable": True},
        {"name": "negotiation_status", "label": "Negotiation Status", "type": "varchar", "description": "Rate negotiation stage", "nullable": True},
        {"name": "approval_status", "label": "Approval Status", "type": "varchar", "description": "Competent authority approval", "nullable": True},
        {"name": "approval_date", "label": "Approval Date", "type": "date", "description": "Approval date", "nullable": True},
        {"name": "contract_no", "label": "Contract No", "type": "varchar", "description": "Rate contract number", "nullable": True},
        {"name": "contract_date", "label": "Contract Date", "type": "date", "description": "Rate contract signing date", "nullable": True},
        {"name": "po_qty", "label": "PO Qty", "type": "numeric", "description": "Ordered quantity", "nullable": True},
        {"name": "po_value", "label": "PO Value", "type": "numeric", "description": "Ordered value (INR)", "nullable": True},
        {"name": "received_qty", "label": "Received Qty", "type": "numeric", "description": "Quantity received at warehouses", "nullable": True},
        {"name": "warehouse_stock", "label": "Warehouse Stock", "type": "numeric", "description": "Current stock across warehouses", "nullable": True},
        {"name": "pipeline_qty", "label": "Pipeline Qty", "type": "numeric", "description": "Ordered but not yet received", "nullable": True},
        {"name": "stock_out_days", "label": "Stock Out Days", "type": "integer", "description": "Days out of stock in the current year", "nullable": True},
        {"name": "last_po_date", "label": "Last PO Date", "type": "date", "description": "Most recent purchase order", "nullable": True},
        {"name": "retender_count", "label": "Re-tender Count", "type": "integer", "description": "Times the item was re-tendered", "nullable": True},
        {"name": "hold_reason", "label": "Hold Reason", "type": "varchar", "description": "Why the item is on hold", "nullable": True},
        {"name": "remarks", "label": "Remarks", "type": "varchar", "description": "Free-text remarks", "nullable": True},
        {"name": "last_updated", "label": "Last Updated", "type": "timestamp", "description": "Row refresh time", "nullable": True},
    ],
}

# Derived views of the column list
EXPORT_SOURCE_COLUMNS = [column["name"] for column in EXPORT_TABLE["columns"]]
EXPORT_COLUMN_LABELS = [column["label"] for column in EXPORT_TABLE["columns"]]

# Predicate key -> source column
FILTER_COLUMNS = {
    "rcStatus": "rc_status",
    "tenderProgress": "tender_progress_remarks",
    "statusAction": "status_action",
}

DOMAIN_ITEM_TYPE = "Drugs"
QUANTITY_COLUMN = "indent_qty"

# Named tender progress values with bespoke filters
NEW_ITEMS = "New Items"
NEW_ITEMS_TENDER_STATUS = "To Be Tendered"
PRICE_OPENED_BID_NOT_FOUND = "Price Opened Bid Not Found"
PRICE_OPENED_TENDER_STATUS = "Price Opened"
BID_FOUND_COLUMNS = ["is_cover_a_bid_found", "is_cover_b_bid_found", "is_price_bid_found"]
