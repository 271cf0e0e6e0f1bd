"""
Initial migration for Agrostock models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.db.models.functions.text
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Agrostock models: tenancy, Lot, StockPosition, Movement, MovementItem."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Company',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('document', models.CharField(blank=True, default='', max_length=20, verbose_name='CNPJ/CPF')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativa')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Empresa',
                'verbose_name_plural': 'Empresas',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Farm',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativa')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='farms', to='agrostock.company', verbose_name='Empresa')),
            ],
            options={
                'verbose_name': 'Fazenda',
                'verbose_name_plural': 'Fazendas',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Sector',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='Nome')),
                ('kind', models.CharField(choices=[('warehouse', 'Armazém'), ('silo', 'Silo'), ('field', 'Talhão'), ('other', 'Outro')], default='warehouse', max_length=20, verbose_name='Tipo')),
                ('max_capacity', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True, verbose_name='Capacidade máxima')),
                ('capacity_unit', models.CharField(blank=True, default='', max_length=20, verbose_name='Unidade de capacidade')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sectors', to='agrostock.farm', verbose_name='Fazenda')),
            ],
            options={
                'verbose_name': 'Setor',
                'verbose_name_plural': 'Setores',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('internal_code', models.CharField(blank=True, default='', max_length=50, verbose_name='Código interno')),
                ('category', models.CharField(choices=[('input', 'Insumo'), ('asset', 'Ativo'), ('produce', 'Produção')], default='input', max_length=20, verbose_name='Categoria')),
                ('unit', models.CharField(default='un', max_length=20, verbose_name='Unidade')),
                ('minimum_stock', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True, verbose_name='Estoque mínimo')),
                ('maximum_stock', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True, verbose_name='Estoque máximo')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='products', to='agrostock.company', verbose_name='Empresa')),
                ('farm', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='products', to='agrostock.farm', verbose_name='Fazenda')),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['company', 'category'], name='product_company_category_idx')],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(max_length=50, verbose_name='Número do lote')),
                ('manufacture_date', models.DateField(blank=True, null=True, verbose_name='Data de fabricação')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Data de vencimento')),
                ('initial_quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Quantidade inicial')),
                ('status', models.CharField(choices=[('active', 'Ativo'), ('consumed', 'Consumido')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('consumed_at', models.DateTimeField(blank=True, null=True, verbose_name='Consumido em')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Fornecedor')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('consumed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Consumido por')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='agrostock.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['expiry_date', 'lot_number'],
                'constraints': [
                    models.UniqueConstraint(django.db.models.functions.text.Lower('lot_number'), models.F('product'), name='unique_lot_number_per_product_ci'),
                    models.CheckConstraint(condition=models.Q(('initial_quantity__gt', 0)), name='lot_initial_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockPosition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_on_hand', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Quantidade atual')),
                ('quantity_reserved', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Quantidade reservada')),
                ('average_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14, verbose_name='Custo médio unitário')),
                ('last_movement_at', models.DateTimeField(blank=True, null=True, verbose_name='Última movimentação')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lot', models.ForeignKey(blank=True, help_text='Vazio = estoque sem rastreio de lote', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='positions', to='agrostock.lot', verbose_name='Lote')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='positions', to='agrostock.product', verbose_name='Produto')),
                ('sector', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='positions', to='agrostock.sector', verbose_name='Setor')),
            ],
            options={
                'verbose_name': 'Posição de estoque',
                'verbose_name_plural': 'Posições de estoque',
                'ordering': ['product', 'sector', 'lot'],
                'indexes': [
                    models.Index(fields=['product', 'sector'], name='position_product_sector_idx'),
                    models.Index(fields=['sector', 'quantity_on_hand'], name='position_sector_on_hand_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'sector', 'lot'), name='unique_position_with_lot'),
                    models.UniqueConstraint(condition=models.Q(('lot__isnull', True)), fields=('product', 'sector'), name='unique_position_without_lot'),
                    models.CheckConstraint(condition=models.Q(('quantity_on_hand__gte', 0)), name='position_on_hand_non_negative'),
                    models.CheckConstraint(condition=models.Q(('quantity_reserved__gte', 0)), name='position_reserved_non_negative'),
                    models.CheckConstraint(condition=models.Q(('quantity_reserved__lte', models.F('quantity_on_hand'))), name='position_reserved_within_on_hand'),
                    models.CheckConstraint(condition=models.Q(('average_cost__gte', 0)), name='position_cost_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('inbound', 'Entrada'), ('outbound', 'Saída'), ('transfer', 'Transferência'), ('adjustment_positive', 'Ajuste positivo'), ('adjustment_negative', 'Ajuste negativo')], max_length=30, verbose_name='Tipo')),
                ('document_number', models.CharField(max_length=40, verbose_name='Número do documento')),
                ('movement_date', models.DateField(db_index=True, default=django.utils.timezone.localdate, verbose_name='Data da movimentação')),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16, verbose_name='Valor total')),
                ('status', models.CharField(choices=[('pending', 'Pendente'), ('approved', 'Aprovado'), ('confirmed', 'Confirmado'), ('cancelled', 'Cancelado')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Aprovado em')),
                ('confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Confirmado em')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelado em')),
                ('cancel_reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo do cancelamento')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Aprovado por')),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Cancelado por')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.company', verbose_name='Empresa')),
                ('confirmed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Confirmado por')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
                ('destination_sector', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='incoming_movements', to='agrostock.sector', verbose_name='Setor de destino')),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='agrostock.farm', verbose_name='Fazenda')),
                ('origin_sector', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='outgoing_movements', to='agrostock.sector', verbose_name='Setor de origem')),
            ],
            options={
                'verbose_name': 'Movimentação',
                'verbose_name_plural': 'Movimentações',
                'ordering': ['-movement_date', '-pk'],
                'indexes': [
                    models.Index(fields=['company', 'movement_date'], name='movement_company_date_idx'),
                    models.Index(fields=['company', 'movement_type'], name='movement_company_type_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'document_number'), name='unique_document_number_per_company'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MovementItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Quantidade')),
                ('unit_value', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14, verbose_name='Valor unitário')),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=16, verbose_name='Valor total')),
                ('cost_basis', models.DecimalField(decimal_places=4, default=Decimal('0'), help_text='Custo médio aplicado ao estoque; usado no estorno', max_digits=14, verbose_name='Custo de referência')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movement_items', to='agrostock.lot', verbose_name='Lote')),
                ('movement', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='agrostock.movement', verbose_name='Movimentação')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movement_items', to='agrostock.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Item de movimentação',
                'verbose_name_plural': 'Itens de movimentação',
                'ordering': ['movement', 'pk'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='movement_item_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('unit_value__gte', 0)), name='movement_item_unit_value_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DocumentSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type_code', models.CharField(max_length=10)),
                ('year', models.PositiveIntegerField()),
                ('last_number', models.PositiveIntegerField(default=0)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='agrostock.company')),
            ],
            options={
                'verbose_name': 'Sequência de documentos',
                'verbose_name_plural': 'Sequências de documentos',
                'constraints': [
                    models.UniqueConstraint(fields=('company', 'type_code', 'year'), name='unique_document_sequence'),
                ],
            },
        ),
    ]
