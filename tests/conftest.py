import csv
import os
import sys
from datetime import datetime

import pytest

FAKE_MCP_SERVER = os.path.join(os.path.dirname(__file__), "fixtures", "fake_mcp_server.py")


BMECAT_2005 = """<?xml version="1.0" encoding="UTF-8"?>
<BMECAT version="2005" xmlns="http://www.bmecat.org/bmecat/2005">
  <HEADER>
    <CATALOG>
      <LANGUAGE>deu</LANGUAGE>
      <CATALOG_ID>BOSCH-2024</CATALOG_ID>
      <CATALOG_VERSION>7.1</CATALOG_VERSION>
      <CATALOG_NAME>Bosch Power Tools</CATALOG_NAME>
      <GENERATION_DATE>2024-03-01</GENERATION_DATE>
    </CATALOG>
    <SUPPLIER>
      <SUPPLIER_NAME>Robert Bosch GmbH</SUPPLIER_NAME>
    </SUPPLIER>
  </HEADER>
  <T_NEW_CATALOG>
    <PRODUCT mode="new">
      <SUPPLIER_PID>0601-9H6-000</SUPPLIER_PID>
      <PRODUCT_DETAILS>
        <DESCRIPTION_SHORT>Akku-Bohrschrauber GSR 18V-55</DESCRIPTION_SHORT>
        <DESCRIPTION_LONG>Kompakt &amp; leistungsstark</DESCRIPTION_LONG>
        <INTERNATIONAL_PID type="gtin">4059952538190</INTERNATIONAL_PID>
        <MANUFACTURER_PID>GSR18V55</MANUFACTURER_PID>
        <MANUFACTURER_NAME>Bosch</MANUFACTURER_NAME>
        <KEYWORD>Bohrschrauber</KEYWORD>
        <KEYWORD>Akku</KEYWORD>
      </PRODUCT_DETAILS>
      <PRODUCT_FEATURES>
        <FEATURE>
          <FNAME>Spannung</FNAME>
          <FVALUE>18</FVALUE>
          <FUNIT>V</FUNIT>
        </FEATURE>
        <FEATURE>
          <FNAME>Farbe</FNAME>
          <FVALUE>Blau</FVALUE>
        </FEATURE>
        <FEATURE>
          <FNAME>Ohne Wert</FNAME>
        </FEATURE>
      </PRODUCT_FEATURES>
      <PRODUCT_PRICE_DETAILS>
        <PRODUCT_PRICE price_type="net_list">
          <PRICE_AMOUNT>149,90</PRICE_AMOUNT>
          <PRICE_CURRENCY>EUR</PRICE_CURRENCY>
        </PRODUCT_PRICE>
        <PRODUCT_PRICE price_type="net_customer">
          <PRICE_AMOUNT>n/a</PRICE_AMOUNT>
        </PRODUCT_PRICE>
      </PRODUCT_PRICE_DETAILS>
      <MIME_INFO>
        <MIME>
          <MIME_SOURCE>images/gsr18v55.jpg</MIME_SOURCE>
          <MIME_DESCR>Produktbild</MIME_DESCR>
        </MIME>
        <MIME>
          <MIME_TYPE>application/pdf</MIME_TYPE>
        </MIME>
      </MIME_INFO>
      <PRODUCT_REFERENCE type="accessories">
        <PROD_ID_TO>2607-335-000</PROD_ID_TO>
      </PRODUCT_REFERENCE>
      <CATALOG_GROUP_ID>TOOLS-DRILL</CATALOG_GROUP_ID>
    </PRODUCT>
    <PRODUCT mode="new">
      <SUPPLIER_PID>2607-335-000</SUPPLIER_PID>
      <PRODUCT_DETAILS>
        <DESCRIPTION_SHORT>Bit-Set 32 tlg. &amp; Halter</DESCRIPTION_SHORT>
      </PRODUCT_DETAILS>
      <PRODUCT_PRICE_DETAILS>
        <PRODUCT_PRICE price_type="net_list">
          <PRICE_AMOUNT>19.5</PRICE_AMOUNT>
        </PRODUCT_PRICE>
      </PRODUCT_PRICE_DETAILS>
    </PRODUCT>
    <PRODUCT mode="new">
      <PRODUCT_DETAILS>
        <DESCRIPTION_SHORT>Product without supplier id</DESCRIPTION_SHORT>
      </PRODUCT_DETAILS>
    </PRODUCT>
  </T_NEW_CATALOG>
</BMECAT>
"""


BMECAT_12 = """<?xml version="1.0" encoding="ISO-8859-1"?>
<BMECAT version="1.2">
  <HEADER>
    <CATALOG><CATALOG_ID>LEGACY</CATALOG_ID></CATALOG>
  </HEADER>
  <T_NEW_CATALOG>
    <ARTICLE>
      <SUPPLIER_AID>A-100</SUPPLIER_AID>
      <ARTICLE_DETAILS>
        <DESCRIPTION_SHORT>Schraubendreher Größe 2</DESCRIPTION_SHORT>
        <MANUFACTURER_AID>SD-2</MANUFACTURER_AID>
        <EAN>4006381333931</EAN>
      </ARTICLE_DETAILS>
      <ARTICLE_PRICE_DETAILS>
        <ARTICLE_PRICE price_type="net_list">
          <PRICE_AMOUNT>3.20</PRICE_AMOUNT>
          <PRICE_CURRENCY>CHF</PRICE_CURRENCY>
        </ARTICLE_PRICE>
      </ARTICLE_PRICE_DETAILS>
    </ARTICLE>
  </T_NEW_CATALOG>
</BMECAT>
"""


@pytest.fixture
def products_csv(tmp_path):
    """CSV file with a numeric column that has one empty value."""
    path = tmp_path / "products.csv"
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "qty", "price", "active", "updated", "sku"])
        writer.writerow(["A", "5", "9.99", "true", "2024-01-15", "SKU-1"])
        writer.writerow(["B", "", "24.50", "false", "2024-02-01", "SKU-2"])
        writer.writerow([])
        writer.writerow(["C", "12", "4.5", "true", "2024-03-10", "SKU-3"])
    return str(path)


@pytest.fixture
def products_xlsx(tmp_path):
    """Workbook with a Products sheet and an Archive sheet."""
    import openpyxl

    path = tmp_path / "products.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Products"
    ws.append(["sku", "name", "price", "stock", "released", "active"])
    ws.append(["SKU-1", "Widget", 9.99, 10, datetime(2024, 1, 15), True])
    ws.append([None, None, None, None, None, None])
    ws.append(["SKU-2", "Gadget", 24.5, None, datetime(2024, 2, 1), False])

    archive = wb.create_sheet("Archive")
    archive.append(["sku", "note"])
    archive.append(["OLD-1", "discontinued"])

    wb.save(path)
    wb.close()
    return str(path)


@pytest.fixture
def bmecat_file(tmp_path):
    path = tmp_path / "catalog.xml"
    path.write_text(BMECAT_2005, encoding="utf-8")
    return str(path)


@pytest.fixture
def bmecat_12_file(tmp_path):
    path = tmp_path / "legacy.xml"
    path.write_bytes(BMECAT_12.encode("iso-8859-1"))
    return str(path)


@pytest.fixture
def mcp_config():
    """Connect config that spawns the fake MCP server with this interpreter."""
    return {
        "command": sys.executable,
        "args": [FAKE_MCP_SERVER],
        "timeout": 10,
        "requestTimeout": 10,
    }
